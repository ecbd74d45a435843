"""Configuration management for mdnotes."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .models import FileCategory, LinkStyle, NamingConvention

DEFAULT_CONFIG_DIR = Path("~/.config/mdnotes").expanduser()
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"
DEFAULT_LIBRARY_FILENAME = "library.sqlite3"
PREFERENCE_NAMESPACE = "mdnotes"

DEFAULT_HTML_TO_MD = (
    '{"<p>": "", "</p>": "", "<strong>": "**", "</strong>": "**", '
    '"<b>": "**", "</b>": "**", "<u>": "#### ", "</u>": "", '
    '"<em>": "*", "</em>": "*", "<blockquote>": "> ", "</blockquote>": "", '
    '"<br><br>": "\\n\\n"}'
)

DEFAULT_PREFERENCES: dict[str, Any] = {
    "bullet": "*",
    "directory": "",
    "templates.directory": "",
    "files.zotero.metadata.prefix": "",
    "files.zotero.metadata.suffix": "-zotero",
    "files.zotero.note.prefix": "",
    "files.zotero.note.suffix": "",
    "files.mdnotes.hub.prefix": "",
    "files.mdnotes.hub.suffix": "",
    "files.mdnotes.standalone.prefix": "",
    "files.mdnotes.standalone.suffix": "",
    "create_notes_file": True,
    "attach_to_zotero": True,
    "pdf_link_style": "zotero",
    "link_style": "plain",
    "citekey_title": False,
    "file_conf": "split",
    "cloud_library_base": "http://zotero.org/users/local",
    "html_to_md": DEFAULT_HTML_TO_MD,
    "obsidian.vault": "",
    "obsidian.attach_obsidian_uri": False,
}


class ConfigError(RuntimeError):
    """Base error for configuration related issues."""


class MissingConfigError(ConfigError):
    """Raised when the configuration file cannot be found."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"Configuration file not found at {path}")
        self.path = path


class InvalidConfigError(ConfigError):
    """Raised when the configuration file misses required keys or values."""


class Preferences:
    """Dotted-name preference store layered over :data:`DEFAULT_PREFERENCES`.

    Names are relative to the ``mdnotes`` namespace, so ``"obsidian.vault"``
    reads ``[mdnotes.obsidian] vault`` from the configuration file.
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = {}
        if values:
            self._values.update(_flatten(values))

    def get(self, name: str, default: Any = None) -> Any:
        if name in self._values:
            return self._values[name]
        return DEFAULT_PREFERENCES.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self._values[name] = value

    def as_dict(self) -> dict[str, Any]:
        merged = dict(DEFAULT_PREFERENCES)
        merged.update(self._values)
        return merged


def _flatten(values: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in values.items():
        name = f"{prefix}{key}"
        # html_to_md may be given as an inline table instead of a JSON string.
        if isinstance(value, Mapping) and name != "html_to_md":
            flat.update(_flatten(value, prefix=f"{name}."))
        else:
            flat[name] = value
    return flat


@dataclass(slots=True)
class MdnotesConfig:
    """In-memory representation of the mdnotes configuration file."""

    library_path: Path
    preferences: Preferences = field(default_factory=Preferences)
    plugins: dict[str, dict[str, Any]] = field(default_factory=dict)
    source_path: Path | None = None


@dataclass(frozen=True, slots=True)
class ExportSettings:
    """Preference snapshot threaded through one export run."""

    bullet: str = "*"
    link_style: LinkStyle = LinkStyle.PLAIN
    citekey_title: bool = False
    pdf_link_style: str = "zotero"
    split_files: bool = True
    create_notes_file: bool = True
    attach_to_library: bool = True
    attach_vault_uri: bool = False
    vault: str = ""
    directory: str = ""
    templates_directory: str = ""
    cloud_library_base: str = "http://zotero.org/users/local"
    html_to_md: Mapping[str, str] = field(
        default_factory=lambda: json.loads(DEFAULT_HTML_TO_MD)
    )
    affixes: Mapping[FileCategory, tuple[str, str]] = field(default_factory=dict)

    @classmethod
    def from_preferences(cls, prefs: Preferences) -> "ExportSettings":
        """Assemble the settings from ``prefs``.

        Raises
        ------
        InvalidConfigError
            If ``link_style`` is unknown or ``html_to_md`` is not a JSON object
            of strings.
        """

        link_style_raw = str(prefs.get("link_style") or "plain").strip().lower()
        try:
            link_style = LinkStyle(link_style_raw)
        except ValueError:
            raise InvalidConfigError(
                f"'link_style' must be one of plain, wiki, markdown (got {link_style_raw!r})"
            ) from None

        affixes = {
            category: (
                str(prefs.get(f"files.{category.value}.prefix") or ""),
                str(prefs.get(f"files.{category.value}.suffix") or ""),
            )
            for category in FileCategory
        }

        return cls(
            bullet=str(prefs.get("bullet") or "*"),
            link_style=link_style,
            citekey_title=_as_bool(prefs.get("citekey_title")),
            pdf_link_style=str(prefs.get("pdf_link_style") or "zotero"),
            split_files=str(prefs.get("file_conf") or "split") == "split",
            create_notes_file=_as_bool(prefs.get("create_notes_file")),
            attach_to_library=_as_bool(prefs.get("attach_to_zotero")),
            attach_vault_uri=_as_bool(prefs.get("obsidian.attach_obsidian_uri")),
            vault=str(prefs.get("obsidian.vault") or ""),
            directory=str(prefs.get("directory") or ""),
            templates_directory=str(prefs.get("templates.directory") or ""),
            cloud_library_base=str(prefs.get("cloud_library_base") or "").rstrip("/"),
            html_to_md=_parse_html_to_md(prefs.get("html_to_md")),
            affixes=affixes,
        )

    def naming(self, category: FileCategory) -> NamingConvention:
        prefix, suffix = self.affixes.get(category, ("", ""))
        return NamingConvention(
            use_citekey_as_title=self.citekey_title,
            link_style=self.link_style,
            prefix=prefix,
            suffix=suffix,
        )


def _as_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def _parse_html_to_md(raw: object) -> dict[str, str]:
    if isinstance(raw, Mapping):
        mapping = dict(raw)
    else:
        try:
            mapping = json.loads(str(raw or "{}"))
        except json.JSONDecodeError as exc:
            raise InvalidConfigError(f"'html_to_md' is not valid JSON: {exc}") from exc
    if not isinstance(mapping, dict):
        raise InvalidConfigError("'html_to_md' must be a JSON object")
    return {str(key): str(value) for key, value in mapping.items()}


def load_config(path: Path | None = None) -> MdnotesConfig:
    """Load configuration from ``path`` or the default location.

    Parameters
    ----------
    path:
        Optional location of the configuration file. When ``None`` the default
        path (``~/.config/mdnotes/config.toml``) is used.

    Raises
    ------
    MissingConfigError
        If the file cannot be found.
    InvalidConfigError
        If settings are malformed.
    """

    config_path = (path or DEFAULT_CONFIG_PATH).expanduser()
    if not config_path.exists():
        raise MissingConfigError(config_path)

    with config_path.open("rb") as fh:
        try:
            raw = tomllib.load(fh)
        except tomllib.TOMLDecodeError as exc:
            raise InvalidConfigError(f"Invalid TOML in {config_path}: {exc}") from exc

    section = raw.get(PREFERENCE_NAMESPACE, {})
    if not isinstance(section, dict):
        raise InvalidConfigError(f"'{PREFERENCE_NAMESPACE}' must be a table")
    section = dict(section)

    config_dir = (config_path.parent if path is not None else DEFAULT_CONFIG_DIR).expanduser()

    # The library database may live anywhere; relative paths are resolved
    # against the configuration directory.
    library_raw = section.pop("library", None)
    if library_raw is None:
        library_path = (config_dir / DEFAULT_LIBRARY_FILENAME).resolve()
    elif isinstance(library_raw, str) and library_raw.strip():
        lp = Path(library_raw.strip()).expanduser()
        library_path = (lp if lp.is_absolute() else (config_dir / lp)).resolve()
    else:
        raise InvalidConfigError("'library' must be a non-empty string when provided")

    preferences = Preferences(section)
    # Validate eagerly so a broken setting surfaces before an export starts.
    ExportSettings.from_preferences(preferences)

    plugins_section = raw.get("plugins")
    plugins: dict[str, dict[str, Any]] = {}
    if isinstance(plugins_section, dict):
        for key, value in plugins_section.items():
            plugins[str(key)] = dict(value) if isinstance(value, dict) else {}

    return MdnotesConfig(
        library_path=library_path,
        preferences=preferences,
        plugins=plugins,
        source_path=config_path,
    )


def bootstrap_config_file(path: Path) -> bool:
    """Create a default config file if missing.

    Returns True when the file was created, False if it already existed.
    """

    if path.exists():
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    default_content = (
        "[mdnotes]\n"
        f'library = "{DEFAULT_LIBRARY_FILENAME}"\n'
        'bullet = "*"\n'
        'link_style = "plain"\n'
        'file_conf = "split"\n'
        "create_notes_file = true\n"
        "attach_to_zotero = true\n"
        'pdf_link_style = "zotero"\n'
        "\n"
        "[mdnotes.templates]\n"
        'directory = ""\n'
        "\n"
        "[mdnotes.obsidian]\n"
        'vault = ""\n'
        "attach_obsidian_uri = false\n"
    )
    path.write_text(default_content, encoding="utf-8")
    return True
