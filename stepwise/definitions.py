"""Declarative workflow definitions loaded from YAML."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Optional, Type

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import StepwiseConfig
from .contracts import CompletionCallback, StepDefinition
from .controller import WorkflowController
from .forms import FormWizard
from .persistence import StorageAdapter
from .utils import import_string


def _resolve_callable(path: Optional[str], what: str) -> Optional[Callable[..., Any]]:
    if path is None:
        return None
    target = import_string(path)
    if not callable(target):
        raise ValueError(f"{what} '{path}' is not callable")
    return target


class StepSpec(BaseModel):
    """YAML form of a :class:`StepDefinition`; callables are import paths."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    description: Optional[str] = None
    optional: bool = False
    fields: List[str] = Field(default_factory=list)
    validate_path: Optional[str] = Field(default=None, alias="validate")
    on_before_next: Optional[str] = None
    on_before_previous: Optional[str] = None
    condition: Optional[str] = None

    def to_step(self) -> StepDefinition:
        return StepDefinition(
            id=self.id,
            title=self.title,
            description=self.description,
            optional=self.optional,
            fields=list(self.fields),
            validate_step=_resolve_callable(self.validate_path, f"Validator for step {self.id}"),
            on_before_next=_resolve_callable(self.on_before_next, f"Hook for step {self.id}"),
            on_before_previous=_resolve_callable(
                self.on_before_previous, f"Hook for step {self.id}"
            ),
            condition=_resolve_callable(self.condition, f"Condition for step {self.id}"),
        )


class WorkflowDefinition(BaseModel):
    """A named workflow: its options, optional form model and ordered steps."""

    name: str
    description: Optional[str] = None
    storage_key: Optional[str] = None
    allow_step_skipping: Optional[bool] = None
    persist_state: Optional[bool] = None
    form_model: Optional[str] = None
    steps: List[StepSpec]

    @field_validator("steps")
    @classmethod
    def _ensure_unique_steps(cls, v: List[StepSpec]) -> List[StepSpec]:
        if not v:
            raise ValueError("a workflow needs at least one step")
        ids = [step.id for step in v]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise ValueError(f"duplicate step ids: {', '.join(duplicates)}")
        return v

    def to_steps(self) -> List[StepDefinition]:
        return [spec.to_step() for spec in self.steps]

    def resolve_form_model(self) -> Optional[Type[BaseModel]]:
        if self.form_model is None:
            return None
        model = import_string(self.form_model)
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ValueError(f"Form model '{self.form_model}' is not a pydantic model")
        return model

    def options(self) -> dict[str, Any]:
        """Controller options set by this definition."""
        fields = ("storage_key", "allow_step_skipping", "persist_state")
        return {name: getattr(self, name) for name in fields if getattr(self, name) is not None}

    async def build(
        self,
        *,
        storage: Optional[StorageAdapter] = None,
        on_complete: Optional[CompletionCallback] = None,
        on_submit: Optional[Callable[[Any], Any]] = None,
        config: Optional[StepwiseConfig] = None,
        **overrides: Any,
    ) -> WorkflowController:
        """Construct and hydrate a controller for this definition.

        With a ``form_model`` the controller gates fields through a
        :class:`~stepwise.forms.ModelFormBinding` and submits the validated
        model to ``on_submit``. Options set by the definition take precedence
        over ``config.wizard``.
        """
        options = {**self.options(), **overrides}
        if storage is not None:
            options["storage"] = storage

        model = self.resolve_form_model()
        if model is not None:
            wizard = await FormWizard.create(
                model,
                self.to_steps(),
                on_submit or (lambda _instance: None),
                config=config,
                **options,
            )
            return wizard.controller
        return await WorkflowController.create(
            self.to_steps(), config=config, on_complete=on_complete, **options
        )


def load_definition(path: str | Path) -> WorkflowDefinition:
    """Load a :class:`WorkflowDefinition` from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return WorkflowDefinition.model_validate(data)
