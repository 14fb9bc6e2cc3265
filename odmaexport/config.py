import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern, Union

import psutil
from dotenv import dotenv_values, load_dotenv

from .exceptions import ConfigError
from .utils import logger

DEFAULT_OUTFILE = Path("OpenDMA.xml")
DEFAULT_CONTENT_DIRECTORY = "data"
MIN_FREE_DISK_MB = 100

SESSION_PREFIX = "Session."
SYSTEM_PROPERTY_PREFIX = "SystemProperty."
ENV_PREFIX = "ODMA_"


@dataclass
class Config:
    """
    Export configuration: repository, exclusion policy, output and content options.
    """

    repository_id: str = ""
    adaptor: Optional[str] = None
    adaptor_system_id: Optional[str] = None
    session_properties: Dict[str, str] = field(default_factory=dict)

    exclude_classes: List[Pattern] = field(default_factory=list)
    exclude_ids: List[str] = field(default_factory=list)

    outfile: Path = field(default=DEFAULT_OUTFILE)
    content_directory: str = DEFAULT_CONTENT_DIRECTORY
    export_content: bool = False
    verbose: int = 1

    def __post_init__(self):
        self.outfile = Path(self.outfile)
        self.content_directory = str(self.content_directory)
        self.exclude_classes = [
            _compile_pattern(p) for p in self.exclude_classes
        ]
        self.exclude_ids = [str(i) for i in self.exclude_ids]
        if self.verbose not in (0, 1, 2):
            raise ConfigError(
                "Invalid value for Verbose. Possible values are 0,1,2",
                field_name="verbose",
                field_value=self.verbose,
            )

    def validate_for_run(self):
        """Checks that must pass before a session is opened."""
        if not self.repository_id:
            raise ConfigError(
                "Repository id must be set", field_name="repository_id"
            )
        if not self.adaptor and not self.adaptor_system_id:
            raise ConfigError(
                "Either AdaptorClass or AdaptorSystemId must be set",
                field_name="adaptor",
            )
        self._validate_disk_space()

    def _validate_disk_space(self):
        """Warn when the output location is nearly full."""
        try:
            target = self.outfile.absolute().parent
            while not target.exists() and target != target.parent:
                target = target.parent
            free_mb = psutil.disk_usage(str(target)).free / (1024**2)
            if free_mb < MIN_FREE_DISK_MB:
                logger.warning(
                    f"Only {free_mb:.0f}MB free at {target}, export may not complete"
                )
        except Exception as e:
            logger.warning(f"Could not check free disk space: {e}")

    def log_configuration(self):
        logger.info(f"Repository: {self.repository_id}")
        logger.info(f"Output file: {self.outfile}")
        if self.export_content:
            logger.info(f"Content directory: {self.content_directory}")
        if self.exclude_classes:
            logger.info(
                "Excluded classes: "
                + " ".join(p.pattern for p in self.exclude_classes)
            )
        if self.exclude_ids:
            logger.info(f"Excluded ids: {' '.join(self.exclude_ids)}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository_id": self.repository_id,
            "adaptor": self.adaptor,
            "adaptor_system_id": self.adaptor_system_id,
            "session_properties": dict(self.session_properties),
            "exclude_classes": [p.pattern for p in self.exclude_classes],
            "exclude_ids": list(self.exclude_ids),
            "outfile": str(self.outfile),
            "content_directory": self.content_directory,
            "export_content": self.export_content,
            "verbose": self.verbose,
        }

    @classmethod
    def from_mapping(cls, props: Mapping[str, Optional[str]]) -> "Config":
        """
        Build a config from the exporter's key/value properties.

        Keys starting with ``Session.`` become session properties, keys starting
        with ``SystemProperty.`` are exported into the process environment.
        """
        session_properties: Dict[str, str] = {}
        for name, value in props.items():
            if value is None:
                continue
            if name.startswith(SYSTEM_PROPERTY_PREFIX):
                os.environ[name[len(SYSTEM_PROPERTY_PREFIX):]] = value
            if name.startswith(SESSION_PREFIX):
                session_properties[name[len(SESSION_PREFIX):]] = value

        verbose_str = props.get("Verbose")
        try:
            verbose = int(verbose_str) if verbose_str is not None else 1
        except ValueError as e:
            raise ConfigError(
                "Invalid value for Verbose. Possible values are 0,1,2",
                field_name="Verbose",
                field_value=verbose_str,
            ) from e

        return cls(
            repository_id=props.get("Repository") or "",
            adaptor=props.get("AdaptorClass") or None,
            adaptor_system_id=props.get("AdaptorSystemId") or None,
            session_properties=session_properties,
            exclude_classes=_split_list(props.get("ExcludeClasses")),
            exclude_ids=_split_list(props.get("ExcludeIds")),
            outfile=Path(props.get("Outfile") or DEFAULT_OUTFILE),
            content_directory=props.get("ContentDirectory")
            or DEFAULT_CONTENT_DIRECTORY,
            export_content=_parse_export_content(props.get("ExportContent")),
            verbose=verbose,
        )

    @classmethod
    def from_properties(cls, path: Union[str, Path]) -> "Config":
        """Load the properties file given on the command line."""
        path = Path(path)
        if not path.is_file():
            raise ConfigError(
                f"Properties file '{path}' can not be found",
                field_name="properties_file",
            )
        return cls.from_mapping(dotenv_values(dotenv_path=path))

    @classmethod
    def from_env(cls, env_path: Union[str, Path] = ".env") -> "Config":
        """
        Load the same keys from ODMA_* environment variables.

        ODMA_REPOSITORY, ODMA_EXCLUDE_CLASSES, ODMA_SESSION_USER, ...
        """
        if Path(env_path).exists():
            load_dotenv(dotenv_path=env_path)

        env_keys = {
            "Repository": "REPOSITORY",
            "AdaptorClass": "ADAPTOR_CLASS",
            "AdaptorSystemId": "ADAPTOR_SYSTEM_ID",
            "ExcludeClasses": "EXCLUDE_CLASSES",
            "ExcludeIds": "EXCLUDE_IDS",
            "Outfile": "OUTFILE",
            "ContentDirectory": "CONTENT_DIRECTORY",
            "ExportContent": "EXPORT_CONTENT",
            "Verbose": "VERBOSE",
        }
        props: Dict[str, Optional[str]] = {
            key: os.getenv(ENV_PREFIX + env_name)
            for key, env_name in env_keys.items()
        }
        session_prefix = ENV_PREFIX + "SESSION_"
        for name, value in os.environ.items():
            if name.startswith(session_prefix):
                props[SESSION_PREFIX + name[len(session_prefix):].lower()] = value
        return cls.from_mapping(props)


def _split_list(value: Optional[str]) -> List[str]:
    """Blank separated list, as used by ExcludeClasses and ExcludeIds."""
    if not value:
        return []
    return value.split()


def _compile_pattern(pattern: Union[str, Pattern]) -> Pattern:
    if isinstance(pattern, re.Pattern):
        return pattern
    try:
        return re.compile(pattern)
    except re.error as e:
        raise ConfigError(
            f"Invalid class exclusion pattern: {e}",
            field_name="exclude_classes",
            field_value=pattern,
        ) from e


def _parse_export_content(value: Optional[str]) -> bool:
    """Strict true/false parsing, unlike a general boolean flag."""
    if value is None:
        return False
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    raise ConfigError(
        "Invalid value for ExportContent configuration property. "
        "Possible values are 'true' or 'false'",
        field_name="ExportContent",
        field_value=value,
    )


__all__ = [
    "Config",
    "DEFAULT_OUTFILE",
    "DEFAULT_CONTENT_DIRECTORY",
]
