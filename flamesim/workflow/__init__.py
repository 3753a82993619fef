"""Generation / publication workflow."""
from flamesim.workflow.controller import StageController
from flamesim.workflow.gate import ConfirmationGate
from flamesim.workflow.presentation import ViewState, derive_view
from flamesim.workflow.state import OperationKind, Stage, WorkflowState, WorkflowStore

__all__ = [
    "ConfirmationGate",
    "OperationKind",
    "Stage",
    "StageController",
    "ViewState",
    "WorkflowState",
    "WorkflowStore",
    "derive_view",
]
