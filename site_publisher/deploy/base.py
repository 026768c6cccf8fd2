"""Deployment outcome types and the abstract target contract."""

from __future__ import annotations

import typing
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticUndefined

from site_publisher.deploy.errors import DeployCancelled, TargetConfigError, TransportError
from site_publisher.deploy.process import CommandRunner
from site_publisher.deploy.runtime import CancelToken, Timeouts
from site_publisher.deploy.transport import HttpTransport
from site_publisher.logging_utils import get_logger

LOGGER = get_logger()


class DeployStatus(str, Enum):
    """Terminal state of a build or deploy attempt."""

    success = "success"
    pending = "pending"
    failure = "failure"


def _to_jsonable(value: Any) -> Any:
    """Convert outcome payload values into JSON-friendly structures."""
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    if isinstance(value, Mapping):
        return {str(key): _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


@dataclass(frozen=True)
class SubOperationResult:
    """Result of a best-effort step that runs after a successful deploy.

    Its presence in an outcome's data means the step was attempted; ``ok``
    tells whether it worked. Absence means it was not attempted.
    """

    name: str
    ok: bool
    message: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize result for JSON output."""
        return {
            "name": self.name,
            "ok": self.ok,
            "message": self.message,
            "payload": _to_jsonable(self.payload),
            "error": self.error,
        }


@dataclass(frozen=True)
class DeployOutcome:
    """Result of any build, deploy or connection test.

    Use the ``success``/``pending``/``failure`` constructors. ``error`` carries
    raw diagnostics (command output, HTTP body) and is only set on failure.
    """

    status: DeployStatus
    message: str
    data: Mapping[str, Any] = field(default_factory=dict)
    error: str | None = None

    def __post_init__(self) -> None:
        if self.error and self.status is not DeployStatus.failure:
            raise ValueError("error text is only allowed on failure outcomes.")
        if not isinstance(self.data, MappingProxyType):
            object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def success(cls, message: str, data: Mapping[str, Any] | None = None) -> DeployOutcome:
        """Create a success outcome."""
        return cls(DeployStatus.success, message, dict(data or {}))

    @classmethod
    def pending(cls, message: str, data: Mapping[str, Any] | None = None) -> DeployOutcome:
        """Create an outcome for work accepted but finished asynchronously."""
        return cls(DeployStatus.pending, message, dict(data or {}))

    @classmethod
    def failure(
        cls,
        message: str,
        output: str | Sequence[str] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> DeployOutcome:
        """Create a failure outcome; list output is joined with newlines."""
        if output is None or isinstance(output, str):
            error = output
        else:
            error = "\n".join(str(line) for line in output)
        return cls(DeployStatus.failure, message, dict(data or {}), error or None)

    def is_success(self) -> bool:
        return self.status is DeployStatus.success

    def is_pending(self) -> bool:
        return self.status is DeployStatus.pending

    def is_failure(self) -> bool:
        return self.status is DeployStatus.failure

    def to_dict(self) -> dict[str, Any]:
        """Serialize outcome for JSON output."""
        return {
            "status": self.status.value,
            "message": self.message,
            "data": _to_jsonable(self.data),
            "error": self.error,
        }


@dataclass(frozen=True)
class BuildOptions:
    """Options for the site build phase."""

    clean: bool = False
    search_index: bool = True
    base_url: str | None = None


@dataclass(frozen=True)
class DeployOptions:
    """Per-call deploy options shared by every target."""

    message: str | None = None
    build: bool = False
    build_options: BuildOptions = field(default_factory=BuildOptions)
    production: bool | None = None
    branch: str | None = None
    cancel: CancelToken | None = None

    def with_cancel(self, cancel: CancelToken) -> DeployOptions:
        """Return a copy bound to ``cancel``."""
        return replace(self, cancel=cancel)

    def raise_if_cancelled(self) -> None:
        if self.cancel is not None:
            self.cancel.raise_if_cancelled()


@dataclass(frozen=True)
class SettingsField:
    """One field of a target's settings form."""

    key: str
    type: str
    label: str
    help: str | None = None
    default: Any = None
    required: bool = False
    options: Mapping[str, str] | None = None
    placeholder: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize field for form rendering."""
        payload: dict[str, Any] = {"key": self.key, "type": self.type, "label": self.label}
        for name in ("help", "default", "options", "placeholder"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = dict(value) if name == "options" else value
        payload["required"] = self.required
        return payload


def settings_fields_from_model(model: type[BaseModel], prefix: str = "") -> list[SettingsField]:
    """Describe a settings model as form fields; nested models become dotted keys."""
    fields: list[SettingsField] = []
    for name, info in model.model_fields.items():
        key = f"{prefix}{name}"
        annotation = info.annotation
        if isinstance(annotation, type) and issubclass(annotation, BaseModel):
            fields.extend(settings_fields_from_model(annotation, prefix=f"{key}."))
            continue
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        options = extra.get("options")
        if "widget" in extra:
            kind = str(extra["widget"])
        elif options:
            kind = "select"
        elif annotation is bool:
            kind = "checkbox"
        elif annotation is int:
            kind = "number"
        elif typing.get_origin(annotation) is list:
            kind = "list"
        else:
            kind = "text"
        default = None if info.default is PydanticUndefined else info.default
        if default == "" or default == []:
            default = None
        fields.append(
            SettingsField(
                key=key,
                type=kind,
                label=info.title or name.replace("_", " ").title(),
                help=info.description,
                default=default,
                required=bool(extra.get("required", False)),
                options=options if isinstance(options, dict) else None,
                placeholder=extra.get("placeholder"),
            )
        )
    return fields


class DeploymentTarget(ABC):
    """Abstract deployment backend.

    Subclasses provide ``_deploy``, ``_status`` and ``_test_connection``;
    the public wrappers here enforce the shared contract: configuration is
    checked locally before any I/O and every I/O or protocol error comes back
    as a failure outcome instead of an exception.
    """

    target_id: ClassVar[str]
    name: ClassVar[str]
    icon: ClassVar[str] = "cloud"
    settings_model: ClassVar[type[BaseModel]]

    def __init__(
        self,
        *,
        runner: CommandRunner | None = None,
        transport: HttpTransport | None = None,
        timeouts: Timeouts | None = None,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.transport = transport or HttpTransport()
        self.timeouts = timeouts or Timeouts()
        self._settings: BaseModel = self.settings_model()

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable summary, including any destructive remote behaviour."""

    @property
    def settings(self) -> Any:
        """Return the currently held (validated) settings model."""
        return self._settings

    @property
    def requires_artifact(self) -> bool:
        """Return whether ``deploy`` reads the build output directory."""
        return True

    def configure(self, settings: Mapping[str, Any]) -> None:
        """Replace held settings with ``settings`` merged over model defaults."""
        self._settings = self._parse_settings(settings)

    def validate_config(self, candidate: Mapping[str, Any]) -> list[str]:
        """Return human-readable problems with ``candidate`` without applying it."""
        try:
            parsed = self._parse_settings(candidate)
        except TargetConfigError as exc:
            return exc.problems
        return self._required_problems(parsed) + self._extra_problems(parsed)

    def is_configured(self) -> bool:
        """Return whether every required setting is present; performs no I/O."""
        return not self._required_problems(self._settings)

    def settings_fields(self) -> list[SettingsField]:
        """Describe the settings form for this target."""
        return settings_fields_from_model(self.settings_model)

    def deploy(self, source_dir: Path, options: DeployOptions | None = None) -> DeployOutcome:
        """Publish ``source_dir``; never raises for I/O or protocol errors."""
        opts = options or DeployOptions()
        problems = self._required_problems(self._settings)
        if problems:
            return DeployOutcome.failure(f"{self.name} is not configured", problems)
        source = Path(source_dir)
        if self.requires_artifact and not source.is_dir():
            return DeployOutcome.failure(f"Build output directory not found: {source}")
        LOGGER.info("Target deploy started", extra={"target": self.target_id})
        try:
            opts.raise_if_cancelled()
            outcome = self._deploy(source, opts)
        except DeployCancelled:
            outcome = DeployOutcome.failure(f"{self.name} deploy cancelled")
        except TransportError as exc:
            outcome = DeployOutcome.failure(f"{self.name} request failed", str(exc))
        except OSError as exc:
            outcome = DeployOutcome.failure(f"{self.name} deploy failed", str(exc))
        LOGGER.info(
            "Target deploy finished",
            extra={"target": self.target_id, "status": outcome.status.value},
        )
        return outcome

    def status(self) -> dict[str, Any] | None:
        """Best-effort remote state; an unconfigured target reports a sentinel."""
        if not self.is_configured():
            return {"target": self.target_id, "configured": False}
        try:
            return self._status()
        except (TransportError, DeployCancelled, OSError) as exc:
            LOGGER.warning("Status query failed", extra={"target": self.target_id})
            return {"target": self.target_id, "configured": True, "error": str(exc)}

    def test_connection(self) -> DeployOutcome:
        """Check reachability and credentials without changing remote state."""
        try:
            return self._test_connection()
        except (TransportError, DeployCancelled, OSError) as exc:
            return DeployOutcome.failure(f"Cannot reach {self.name}", str(exc))

    def _parse_settings(self, settings: Mapping[str, Any]) -> BaseModel:
        try:
            return self.settings_model.model_validate(dict(settings))
        except ValidationError as exc:
            problems = [
                f"{'.'.join(str(part) for part in error['loc']) or 'settings'}: {error['msg']}"
                for error in exc.errors()
            ]
            raise TargetConfigError(self.target_id, problems) from exc

    @abstractmethod
    def _required_problems(self, settings: Any) -> list[str]:
        """Return missing required settings; must not perform I/O."""

    def _extra_problems(self, settings: Any) -> list[str]:
        """Return advisory problems reported by ``validate_config`` only."""
        del settings
        return []

    @abstractmethod
    def _deploy(self, source_dir: Path, options: DeployOptions) -> DeployOutcome:
        """Run the backend-specific deploy."""

    @abstractmethod
    def _status(self) -> dict[str, Any] | None:
        """Query backend-specific remote state."""

    @abstractmethod
    def _test_connection(self) -> DeployOutcome:
        """Run the backend-specific connectivity check."""
