"""
Application Layer - Run Configuration

RunConfig is the configuration surface of a run. It can be built directly
or loaded from a YAML profile:

    # configs/dev.yaml
    profile: dev
    max_turns: 8
    tool_timeout: 30
    logging:
      level: INFO
    session:
      type: file          # memory | file
      work_dir: .agentrelay/sessions
      id: default

Environment variables override profile values:
- AGENTRELAY_MAX_TURNS
- AGENTRELAY_TOOL_TIMEOUT
- AGENTRELAY_LOG_LEVEL
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from agentrelay.core.domain.errors import ConfigurationError
from agentrelay.core.domain.models import CancellationToken
from agentrelay.core.interfaces.hooks import RunHooks
from agentrelay.core.interfaces.session import SessionProtocol
from agentrelay.infrastructure.logging_config import configure_logging
from agentrelay.infrastructure.persistence.file_session import FileSession
from agentrelay.infrastructure.persistence.memory_session import InMemorySession

logger = structlog.get_logger().bind(component="run_config")

DEFAULT_SESSION_DIR = ".agentrelay/sessions"


@dataclass
class RunConfig:
    """
    Configuration of one run.

    Attributes:
        max_turns: Turn limit for the whole run; None uses the active
            agent's own limit
        session: Session providing history and receiving the run's items
        hooks: Run-level lifecycle hooks
        tool_timeout: Per tool call timeout in seconds
        context: Values for instruction templates and guardrails
        cancellation: Token to cancel the run from outside
        log_level: Logging level requested by the profile
    """

    max_turns: int | None = None
    session: SessionProtocol | None = None
    hooks: list[RunHooks] = field(default_factory=list)
    tool_timeout: float | None = None
    context: dict[str, Any] = field(default_factory=dict)
    cancellation: CancellationToken | None = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.max_turns is not None and self.max_turns < 1:
            raise ConfigurationError(f"max_turns must be >= 1, got {self.max_turns}")
        if self.tool_timeout is not None and self.tool_timeout <= 0:
            raise ConfigurationError(f"tool_timeout must be > 0, got {self.tool_timeout}")


def load_profile(profile: str, config_dir: str | Path = "configs") -> dict[str, Any]:
    """
    Load a configuration profile from YAML.

    Args:
        profile: Profile name, resolved to ``{config_dir}/{profile}.yaml``
        config_dir: Directory holding profile files

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the profile does not exist
        ConfigurationError: If the file is not a YAML mapping
    """
    profile_path = Path(config_dir) / f"{profile}.yaml"

    if not profile_path.exists():
        logger.error(
            "profile_not_found",
            profile=profile,
            path=str(profile_path),
            hint="Ensure profile YAML exists in configs directory",
        )
        raise FileNotFoundError(f"Profile not found: {profile_path}")

    with open(profile_path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ConfigurationError(f"Profile {profile_path} must contain a mapping")

    logger.debug("profile_loaded", profile=profile, path=str(profile_path))
    return config


def load_run_config(
    profile: str = "dev",
    config_dir: str | Path = "configs",
    session_id: str | None = None,
) -> RunConfig:
    """
    Build a RunConfig from a YAML profile plus environment overrides.

    The resolved logging level is applied through configure_logging.

    Args:
        profile: Profile name
        config_dir: Directory holding profile files
        session_id: Overrides ``session.id`` from the profile

    Returns:
        RunConfig with the profile's limits and session
    """
    config = load_profile(profile, config_dir)

    max_turns = _env_or(config.get("max_turns"), "AGENTRELAY_MAX_TURNS", int)
    tool_timeout = _env_or(config.get("tool_timeout"), "AGENTRELAY_TOOL_TIMEOUT", float)
    log_level = _env_or(
        (config.get("logging") or {}).get("level", "WARNING"), "AGENTRELAY_LOG_LEVEL", str
    )

    log_level = str(log_level).upper()
    try:
        configure_logging(log_level)
    except ValueError as e:
        raise ConfigurationError(f"Invalid logging level: {log_level!r}") from e

    session = _create_session(config.get("session"), session_id)

    logger.info(
        "run_config.loaded",
        profile=profile,
        max_turns=max_turns,
        tool_timeout=tool_timeout,
        session_type=type(session).__name__ if session else None,
    )
    return RunConfig(
        max_turns=max_turns,
        session=session,
        tool_timeout=tool_timeout,
        log_level=log_level,
    )


def _create_session(
    session_config: dict[str, Any] | None, session_id: str | None
) -> SessionProtocol | None:
    if not session_config:
        return None

    effective_id = session_id or session_config.get("id")
    if not effective_id:
        raise ConfigurationError("session.id is required when a session is configured")

    session_type = session_config.get("type", "memory")
    if session_type == "memory":
        return InMemorySession(effective_id)
    if session_type == "file":
        work_dir = session_config.get("work_dir", DEFAULT_SESSION_DIR)
        return FileSession(effective_id, work_dir)
    raise ConfigurationError(f"Unknown session type: {session_type}")


def _env_or(value: Any, env_var: str, cast: type) -> Any:
    raw = os.getenv(env_var)
    if raw is not None and raw != "":
        value = raw
    if value is None:
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {env_var}: {value!r}") from e
