"""Collate configuration.

CollateConfig is the central configuration object, frozen after creation.
"""

from dataclasses import dataclass, field
from pathlib import Path

from collate._errors import ConfigError

DEFAULT_EXTENSIONS: tuple[str, ...] = (".js", ".jsx", ".ts", ".tsx", ".py", ".html")

DEFAULT_IGNORE: tuple[str, ...] = (
    "*.test.*",
    "*.spec.*",
    "*.d.ts",
    "__tests__/*",
    "*/__tests__/*",
)


@dataclass(frozen=True, slots=True)
class CollateConfig:
    """Configuration for a collate engine.

    Attributes:
        root: Project root directory. Always resolved to an absolute path
              on construction.
        pages_dir: Directory (relative to root) holding template files.
        extensions: File extensions treated as templates.
        ignore: Glob patterns (matched against the template's relative path)
            that are never treated as templates.
        debounce_ms: Window in which filesystem changes are grouped and
            coalesced per path.
        step_ms: Quiet period the notifier waits for before flushing a batch.
        retry_initial_s: First backoff delay after a watcher I/O failure.
        retry_max_s: Upper bound of the watcher backoff delay.
        preserve_slashes: Keep ``/`` inside bound field values as path
            separators instead of slugifying them to ``-``.
        record_types: Record type names bindings may refer to. Empty means
            any type name is accepted.
        data_file: Optional YAML/JSON file used to seed an in-memory store.

    """

    root: Path = field(default_factory=Path.cwd)
    pages_dir: str = "pages"
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    ignore: tuple[str, ...] = DEFAULT_IGNORE
    debounce_ms: int = 50
    step_ms: int = 10
    retry_initial_s: float = 0.5
    retry_max_s: float = 30.0
    preserve_slashes: bool = False
    record_types: tuple[str, ...] = ()
    data_file: str | None = None

    def __post_init__(self) -> None:
        # watchfiles reports absolute paths; relative_to() needs an absolute root.
        if not self.root.is_absolute():
            object.__setattr__(self, "root", self.root.resolve())
        if self.debounce_ms <= 0:
            msg = f"debounce_ms must be positive, got {self.debounce_ms}"
            raise ConfigError(msg)
        if self.step_ms <= 0 or self.step_ms > self.debounce_ms:
            msg = f"step_ms must be in (0, debounce_ms], got {self.step_ms}"
            raise ConfigError(msg)
        if self.retry_initial_s <= 0 or self.retry_max_s < self.retry_initial_s:
            msg = "retry_initial_s must be positive and not exceed retry_max_s"
            raise ConfigError(msg)

    @property
    def pages_path(self) -> Path:
        """Absolute path to the template directory."""
        return self.root / self.pages_dir

    @property
    def data_path(self) -> Path | None:
        """Absolute path to the data file, if one is configured."""
        if self.data_file is None:
            return None
        path = Path(self.data_file)
        if path.is_absolute():
            return path
        return self.root / path
