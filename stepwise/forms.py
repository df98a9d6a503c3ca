"""Form binding backed by pydantic models."""

from __future__ import annotations

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from pydantic import BaseModel, ValidationError

from .contracts import StepDefinition
from .controller import WorkflowController, options_from_config
from .utils import maybe_await

if TYPE_CHECKING:
    from .config import StepwiseConfig

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DataSource = Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]]

MODEL_ERROR_KEY = "__model__"


class ModelFormBinding(Generic[ModelT]):
    """Validate named fields of ``model`` against accumulated form data.

    The whole model is validated and only errors located at the requested
    fields count, so fields owned by later steps do not block earlier ones.
    Messages from the last validation are kept in :attr:`errors`.
    """

    def __init__(self, model: Type[ModelT], data: DataSource) -> None:
        self.model = model
        self._data = data
        self.errors: Dict[str, str] = {}

    def _current_data(self) -> Dict[str, Any]:
        data = self._data() if callable(self._data) else self._data
        return dict(data)

    def _collect_errors(self) -> Dict[str, str]:
        try:
            self.model.model_validate(self._current_data())
        except ValidationError as e:
            collected: Dict[str, str] = {}
            for error in e.errors():
                field = str(error["loc"][0]) if error["loc"] else MODEL_ERROR_KEY
                collected.setdefault(field, error["msg"])
            return collected
        return {}

    def validate_fields(self, names: List[str]) -> bool:
        found = self._collect_errors()
        relevant = {name: found[name] for name in names if name in found}
        for name in names:
            self.errors.pop(name, None)
        self.errors.update(relevant)
        return not relevant

    def validate_all(self) -> Optional[ModelT]:
        """Return the validated model, or ``None`` with :attr:`errors` filled in."""
        try:
            instance = self.model.model_validate(self._current_data())
        except ValidationError:
            self.errors = self._collect_errors()
            return None
        self.errors = {}
        return instance


class FormWizard(Generic[ModelT]):
    """A workflow whose steps fill one pydantic model.

    Field gating reads the controller's own form data. On the last step the
    complete model is validated and handed to ``on_submit``; when the model
    is invalid the pydantic ``ValidationError`` propagates from
    :meth:`WorkflowController.next_step` and the workflow stays incomplete.
    """

    def __init__(
        self,
        model: Type[ModelT],
        steps: Sequence[StepDefinition],
        on_submit: Callable[[ModelT], Union[None, Awaitable[None]]],
        **options: Any,
    ) -> None:
        self.model = model
        self._on_submit = on_submit
        self.binding: ModelFormBinding[ModelT] = ModelFormBinding(
            model, lambda: self.controller.form_data
        )
        self.controller = WorkflowController(
            steps, form_binding=self.binding, on_complete=self._submit, **options
        )

    @classmethod
    async def create(
        cls,
        model: Type[ModelT],
        steps: Sequence[StepDefinition],
        on_submit: Callable[[ModelT], Union[None, Awaitable[None]]],
        *,
        config: Optional["StepwiseConfig"] = None,
        **options: Any,
    ) -> "FormWizard[ModelT]":
        """Construct a form wizard, filling options from ``config``, and hydrate it."""
        wizard = cls(model, steps, on_submit, **options_from_config(config, options))
        await wizard.controller.hydrate()
        return wizard

    async def _submit(self, form_data: Dict[str, Any]) -> None:
        instance = self.binding.validate_all()
        if instance is None:
            logger.info(f"Form submission blocked by invalid fields: {sorted(self.binding.errors)}")
            # re-raise the model's own error so callers see pydantic's details
            self.model.model_validate(form_data)
        await maybe_await(self._on_submit(instance))
