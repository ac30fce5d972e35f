"""Configuration management for extforge."""

from enum import IntEnum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ICON_SIZES = [16, 24, 32, 48, 128]


class PackagingMode(IntEnum):
    """Where third-party dependency files are vendored into the build."""

    NONE = 0
    PUBLIC = 1
    CONTENT_SCRIPT = 2


class Settings(BaseSettings):
    """Project settings loaded from environment variables (EXTFORGE_*) and .env."""

    model_config = SettingsConfigDict(
        env_prefix='extforge_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Directory layout (relative paths resolve against the working directory)
    source_dir: Path = Field(default=Path("src"), description="Extension source tree")
    dist_dir: Path = Field(default=Path("dist"), description="Unpacked build output")
    package_dir: Path = Field(default=Path("package"), description="Installer archives")
    project_dir: Path = Field(default=Path("."), description="Holds package.json and node_modules")

    # Icons
    icon_source: str = Field(default="cursor.svg", description="SVG under img/ rasterized into icons")
    icon_sizes: List[int] = Field(default_factory=lambda: list(DEFAULT_ICON_SIZES))

    # Execution
    max_workers: int = Field(default=8, ge=1, description="Max concurrent build steps")
    watch_debounce: float = Field(default=0.3, ge=0, description="Seconds of quiet before a rebuild")
    notifications: bool = Field(default=True, description="Desktop notification on completion")

    # External tools
    svgo_command: str = Field(default="svgo")
    svgo_config: Optional[Path] = Field(default=None, description="svgo config file (keep viewBox etc.)")
    rsvg_command: str = Field(default="rsvg-convert")
    html_minifier_command: str = Field(default="html-minifier-terser")
    sass_command: str = Field(default="sass")
    esbuild_command: str = Field(default="esbuild")

    @field_validator('icon_sizes')
    @classmethod
    def _check_icon_sizes(cls, sizes: List[int]) -> List[int]:
        if not sizes:
            raise ValueError("icon_sizes must not be empty")
        if any(size <= 0 for size in sizes):
            raise ValueError("icon sizes must be positive")
        if sorted(set(sizes)) != list(sizes):
            raise ValueError("icon sizes must be unique and ascending")
        return sizes


class BuildConfig(BaseModel):
    """
    Immutable configuration for a single build invocation.

    Constructed once per CLI command from Settings plus command-line flags and
    passed explicitly to every component that needs it.
    """

    model_config = ConfigDict(frozen=True)

    source_dir: Path
    dist_dir: Path
    package_dir: Path
    project_dir: Path

    production: bool = False
    packaging_mode: PackagingMode = PackagingMode.NONE
    notify: bool = True

    icon_source: str = "cursor.svg"
    icon_sizes: tuple = tuple(DEFAULT_ICON_SIZES)
    max_workers: int = 8
    watch_debounce: float = 0.3

    svgo_command: str = "svgo"
    svgo_config: Optional[Path] = None
    rsvg_command: str = "rsvg-convert"
    html_minifier_command: str = "html-minifier-terser"
    sass_command: str = "sass"
    esbuild_command: str = "esbuild"

    @model_validator(mode='after')
    def _check_package_dir(self) -> "BuildConfig":
        # The build directory is cleared and archived whole; packages cannot live in it
        if self.package_dir.resolve().is_relative_to(self.dist_dir.resolve()):
            raise ValueError(f"package_dir {self.package_dir} must not be inside dist_dir {self.dist_dir}")
        return self

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        production: bool = False,
        packaging_mode: int = PackagingMode.NONE,
        notify: Optional[bool] = None
    ) -> "BuildConfig":
        """
        Build the per-invocation config.

        Args:
            settings: Loaded project settings
            production: Production-mode flag
            packaging_mode: Dependency inclusion mode (0, 1 or 2)
            notify: Override for desktop notifications (None keeps the setting)
        """
        return cls(
            source_dir=settings.source_dir.resolve(),
            dist_dir=settings.dist_dir.resolve(),
            package_dir=settings.package_dir.resolve(),
            project_dir=settings.project_dir.resolve(),
            production=production,
            packaging_mode=PackagingMode(int(packaging_mode or 0)),
            notify=settings.notifications if notify is None else notify,
            icon_source=settings.icon_source,
            icon_sizes=tuple(settings.icon_sizes),
            max_workers=settings.max_workers,
            watch_debounce=settings.watch_debounce,
            svgo_command=settings.svgo_command,
            svgo_config=settings.svgo_config,
            rsvg_command=settings.rsvg_command,
            html_minifier_command=settings.html_minifier_command,
            sass_command=settings.sass_command,
            esbuild_command=settings.esbuild_command,
        )

    @property
    def node_modules_dir(self) -> Path:
        return self.project_dir / "node_modules"

    @property
    def manifest_path(self) -> Path:
        """Manifest inside the source tree."""
        return self.source_dir / "manifest.json"


def get_settings() -> Settings:
    """Get project settings."""
    return Settings()
