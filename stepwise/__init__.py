"""Stepwise: multi-step workflow engine with validation gating and persistence."""

from .config import StepwiseConfig, load_config
from .contracts import FormBinding, StepDefinition, StepStatus, WizardState
from .controller import WorkflowController, visible_steps
from .definitions import WorkflowDefinition, load_definition
from .forms import FormWizard, ModelFormBinding
from .gate import ValidationGate
from .persistence import get_adapter

__version__ = "0.1.0"
__all__ = [
    "StepDefinition",
    "WizardState",
    "StepStatus",
    "FormBinding",
    "ValidationGate",
    "WorkflowController",
    "visible_steps",
    "FormWizard",
    "ModelFormBinding",
    "WorkflowDefinition",
    "load_definition",
    "StepwiseConfig",
    "load_config",
    "get_adapter",
]
