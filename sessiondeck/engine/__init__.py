"""SessionDeck engine: session lifecycle, branch state and persistence."""
from .models import (
    BranchStatus,
    ExplorerFilter,
    FileViewerPosition,
    GitStatus,
    PrState,
    PrStatus,
    SessionStatus,
    SessionType,
)
from .config import EngineConfig
from .branch_status import BranchStatusInput, compute_branch_status
from .errors import (
    ConfigLoadError,
    ConfigSaveError,
    GitCommandError,
    NotAGitRepositoryError,
    SessionDeckError,
    SessionNotFoundError,
)

__all__ = [
    # Lifecycle (lazy import to avoid circular deps)
    "SessionManager",
    "SessionStore",
    "PersistenceGateway",
    "TerminalTabManager",
    "AgentActivityMonitor",
    "PanelVisibilityManager",
    "PanelRegistry",
    # Models
    "BranchStatus",
    "ExplorerFilter",
    "FileViewerPosition",
    "GitStatus",
    "PrState",
    "PrStatus",
    "SessionStatus",
    "SessionType",
    # Branch status
    "BranchStatusInput",
    "compute_branch_status",
    # Config
    "EngineConfig",
    "load_yaml_config",
    # Errors
    "ConfigLoadError",
    "ConfigSaveError",
    "GitCommandError",
    "NotAGitRepositoryError",
    "SessionDeckError",
    "SessionNotFoundError",
]


def __getattr__(name: str):
    if name == "SessionManager":
        from .session_manager import SessionManager
        return SessionManager
    if name == "SessionStore":
        from .store import SessionStore
        return SessionStore
    if name == "PersistenceGateway":
        from .persistence import PersistenceGateway
        return PersistenceGateway
    if name == "TerminalTabManager":
        from .terminal_tabs import TerminalTabManager
        return TerminalTabManager
    if name == "AgentActivityMonitor":
        from .activity import AgentActivityMonitor
        return AgentActivityMonitor
    if name == "PanelVisibilityManager":
        from .panels import PanelVisibilityManager
        return PanelVisibilityManager
    if name == "PanelRegistry":
        from .panels import PanelRegistry
        return PanelRegistry
    if name == "load_yaml_config":
        from .yaml_config import load_yaml_config
        return load_yaml_config
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
