"""
Configuration: loads settings from config.yaml / config.json, environment
variables, and built-in defaults (in that priority order: CLI args > env >
file > defaults).

The persisted file uses camelCase keys (it is shared with other tooling);
snake_case is accepted as well.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

from .errors import ConfigError


DEFAULT_VERBS = [
    "Accomplishing", "Baking", "Brewing", "Cogitating", "Computing",
    "Crafting", "Deliberating", "Forging", "Musing", "Pondering",
    "Processing", "Ruminating", "Synthesizing", "Thinking", "Working",
]

DEFAULT_PHASES = ["·", "✢", "✳", "✶", "✻", "✽"]

BORDER_STYLES = (
    "none", "single", "double", "round", "bold", "singleDouble",
    "doubleSingle", "classic", "topBottomSingle", "topBottomDouble",
    "topBottomBold",
)

STYLING_ORDER = ("bold", "italic", "underline", "strikethrough", "inverse")

_DEFAULT_PROMPT_DATA_URL = (
    "https://raw.githubusercontent.com/Piebald-AI/tweakcc/refs/heads/main/data/prompts"
)

BACKUP_FILENAME = "target.backup.js"
BACKUP_INFO_FILENAME = "target.backup.json"

# Config file search locations
_CONFIG_FILENAMES = ["config.yaml", "config.yml", "config.json"]


def default_config_dir() -> str:
    return os.getenv("BUNDLE_PATCHER_CONFIG_DIR") or os.path.join(
        os.path.expanduser("~"), ".bundle-patcher")


def _get(data: dict, *keys: str, default: Any = None) -> Any:
    """First present key among *keys* (camelCase / snake_case aliases)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _section(data: dict, *keys: str) -> dict:
    value = _get(data, *keys, default={})
    return value if isinstance(value, dict) else {}


@dataclass
class Theme:
    name: str
    id: str
    colors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Theme":
        colors = data.get("colors") or {}
        return cls(
            name=str(data.get("name", data.get("id", ""))),
            id=str(data.get("id", data.get("name", ""))),
            colors={str(k): str(v) for k, v in colors.items()},
        )


@dataclass
class ThinkingVerbs:
    format: str = "{}… "
    verbs: list[str] = field(default_factory=lambda: list(DEFAULT_VERBS))

    @classmethod
    def from_dict(cls, data: dict) -> "ThinkingVerbs":
        fmt = data.get("format")
        # Older configs stored only the trailing punctuation.
        if fmt is None and data.get("punctuation") is not None:
            fmt = "{}" + str(data["punctuation"])
        verbs = data.get("verbs")
        return cls(
            format=str(fmt) if fmt is not None else cls.format,
            verbs=[str(v) for v in verbs] if isinstance(verbs, list) else list(DEFAULT_VERBS),
        )


@dataclass
class ThinkingStyle:
    phases: list[str] = field(default_factory=lambda: list(DEFAULT_PHASES))
    update_interval: int = 120
    reverse_mirror: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "ThinkingStyle":
        phases = data.get("phases")
        return cls(
            phases=[str(p) for p in phases] if isinstance(phases, list) and phases
            else list(DEFAULT_PHASES),
            update_interval=int(_get(data, "updateInterval", "update_interval", default=120)),
            reverse_mirror=bool(_get(data, "reverseMirror", "reverse_mirror", default=True)),
        )


@dataclass
class UserMessageDisplay:
    format: str = " > {}"
    foreground_color: str = "default"
    background_color: Optional[str] = None
    styling: list[str] = field(default_factory=list)
    border_style: str = "none"
    border_color: str = "rgb(255,255,255)"
    padding_x: int = 0
    padding_y: int = 0
    fit_box_to_content: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "UserMessageDisplay":
        styling = _get(data, "styling", default=[])
        border_style = str(_get(data, "borderStyle", "border_style", default="none"))
        if border_style not in BORDER_STYLES:
            raise ConfigError(f"unknown userMessageDisplay border style: {border_style}")
        background = data.get("backgroundColor", data.get("background_color"))
        return cls(
            format=str(_get(data, "format", default=" > {}")),
            foreground_color=str(_get(data, "foregroundColor", "foreground_color",
                                      default="default")),
            background_color=None if background is None else str(background),
            styling=[s for s in STYLING_ORDER if s in styling],
            border_style=border_style,
            border_color=str(_get(data, "borderColor", "border_color",
                                  default="rgb(255,255,255)")),
            padding_x=int(_get(data, "paddingX", "padding_x", default=0)),
            padding_y=int(_get(data, "paddingY", "padding_y", default=0)),
            fit_box_to_content=bool(_get(data, "fitBoxToContent", "fit_box_to_content",
                                         default=False)),
        )


@dataclass
class InputBox:
    remove_border: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "InputBox":
        return cls(remove_border=bool(_get(data, "removeBorder", "remove_border", default=False)))


@dataclass
class Toolset:
    name: str
    allowed_tools: Any = "*"  # "*" or list of tool names

    @classmethod
    def from_dict(cls, data: dict) -> "Toolset":
        allowed = _get(data, "allowedTools", "allowed_tools", default="*")
        if allowed != "*":
            allowed = [str(t) for t in allowed]
        return cls(name=str(data["name"]), allowed_tools=allowed)


@dataclass
class SubagentModels:
    plan: Optional[str] = None
    explore: Optional[str] = None
    general_purpose: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "SubagentModels":
        return cls(
            plan=_get(data, "plan"),
            explore=_get(data, "explore"),
            general_purpose=_get(data, "generalPurpose", "general_purpose"),
        )

    def any_set(self) -> bool:
        return bool(self.plan or self.explore or self.general_purpose)


@dataclass
class MiscSettings:
    """Feature toggles; each maps to one patch."""
    context_limit_override: bool = True
    force_verbose: bool = True
    spinner_no_freeze: bool = True
    custom_models: bool = True
    custom_model_aliases: bool = False
    show_more_items_in_select_menus: bool = True
    visible_option_count: int = 25
    ignore_max_subscription: bool = True
    show_version: bool = True
    suppress_rate_limit_options: bool = False
    hide_startup_banner: bool = False
    hide_ctrl_g_to_edit: bool = False
    increase_file_read_limit: bool = False
    suppress_line_numbers: bool = False
    thinking_visibility: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "MiscSettings":
        defaults = cls()
        values = {}
        for name, default in vars(defaults).items():
            camel = _camel(name)
            values[name] = type(default)(_get(data, camel, name, default=default))
        return cls(**values)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class Settings:
    themes: list[Theme] = field(default_factory=list)
    thinking_verbs: Optional[ThinkingVerbs] = field(default_factory=ThinkingVerbs)
    thinking_style: ThinkingStyle = field(default_factory=ThinkingStyle)
    user_message_display: Optional[UserMessageDisplay] = None
    input_box: InputBox = field(default_factory=InputBox)
    toolsets: list[Toolset] = field(default_factory=list)
    default_toolset: Optional[str] = None
    subagent_models: SubagentModels = field(default_factory=SubagentModels)
    welcome_text: Optional[str] = None
    banner_text: Optional[str] = None
    misc: MiscSettings = field(default_factory=MiscSettings)

    @classmethod
    def from_dict(cls, data: dict | None) -> "Settings":
        data = data or {}
        settings = cls()

        themes = _get(data, "themes", default=[])
        if isinstance(themes, list):
            settings.themes = [Theme.from_dict(t) for t in themes if isinstance(t, dict)]

        verbs = data.get("thinkingVerbs", data.get("thinking_verbs", {}))
        settings.thinking_verbs = (
            ThinkingVerbs.from_dict(verbs) if isinstance(verbs, dict) else None
        )
        settings.thinking_style = ThinkingStyle.from_dict(
            _section(data, "thinkingStyle", "thinking_style"))

        umd = _get(data, "userMessageDisplay", "user_message_display")
        if isinstance(umd, dict):
            settings.user_message_display = UserMessageDisplay.from_dict(umd)

        settings.input_box = InputBox.from_dict(_section(data, "inputBox", "input_box"))

        toolsets = _get(data, "toolsets", default=[])
        if isinstance(toolsets, list):
            settings.toolsets = [Toolset.from_dict(t) for t in toolsets
                                 if isinstance(t, dict) and "name" in t]
        settings.default_toolset = _get(data, "defaultToolset", "default_toolset")

        settings.subagent_models = SubagentModels.from_dict(
            _section(data, "subagentModels", "subagent_models"))

        launch = _section(data, "launchText", "launch_text")
        settings.welcome_text = _get(data, "welcomeText", "welcome_text",
                                     default=_get(launch, "customText", "custom_text"))
        settings.banner_text = _get(data, "bannerText", "banner_text",
                                    default=_get(launch, "customText", "custom_text"))

        settings.misc = MiscSettings.from_dict(_section(data, "misc"))
        return settings


def _find_config_file(explicit_path: str | None = None,
                      config_dir: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, then the config directory."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    d = config_dir or default_config_dir()
    for name in _CONFIG_FILENAMES:
        path = os.path.join(d, name)
        if os.path.isfile(path):
            return path
    return None


def _load_file(path: str) -> dict:
    """Load a YAML (or JSON) config file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid config file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


class Config:
    """Application configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables
    3. config.yaml / config.json in the config directory
    4. Built-in defaults
    """

    def __init__(self, file_data: dict | None = None, config_dir: str | None = None):
        fd = file_data or {}

        def _env_or(env_key: str, file_key: str, default):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val
            file_val = fd.get(file_key)
            if file_val is not None:
                return file_val
            return default

        self.CONFIG_DIR = config_dir or default_config_dir()
        self.TARGET_PATH: str | None = _env_or("BUNDLE_PATCHER_TARGET", "targetPath", None)
        self.TARGET_VERSION: str | None = _env_or("BUNDLE_PATCHER_TARGET_VERSION",
                                                  "ccVersion", None) or None

        debug = os.getenv("BUNDLE_PATCHER_DEBUG")
        self.DEBUG = debug.lower() == "true" if debug is not None else bool(fd.get("debug", False))

        self.BACKUP_FILE = os.path.join(self.CONFIG_DIR, BACKUP_FILENAME)
        self.PROMPTS_DIR = os.path.join(self.CONFIG_DIR, "system-prompts")
        self.PROMPT_CACHE_DIR = os.path.join(self.CONFIG_DIR, "prompt-data-cache")
        self.LOG_DIR = os.path.join(self.CONFIG_DIR, "logs")
        self.PROMPT_DATA_URL = _env_or("BUNDLE_PATCHER_PROMPT_DATA_URL",
                                       "promptDataUrl", _DEFAULT_PROMPT_DATA_URL)
        self.SYSTEM_PROMPTS_ENABLED = bool(fd.get("systemPrompts", True))

        self.settings = Settings.from_dict(_section(fd, "settings"))

    @classmethod
    def load(cls, config_path: str | None = None,
             config_dir: str | None = None) -> "Config":
        """Load config from file (if found) + env vars + defaults."""
        if config_dir is None and config_path:
            config_dir = os.path.dirname(os.path.abspath(config_path))
        path = _find_config_file(config_path, config_dir)
        file_data = _load_file(path) if path else {}
        return cls(file_data, config_dir=config_dir)
