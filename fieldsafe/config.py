"""Configuration precedence system for fieldsafe."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from pydantic import TypeAdapter, ValidationError

from fieldsafe.errors import ConfigurationError, Suggestion

try:
    import tomllib  # type: ignore[import-not-found]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef]

logger = logging.getLogger("fieldsafe.config")

DEFAULT_HTML_ALLOWED_TAGS = [
    "a", "abbr", "b", "blockquote", "br", "caption", "cite", "code", "del",
    "div", "em", "figcaption", "figure", "h1", "h2", "h3", "h4", "h5", "h6",
    "hr", "i", "img", "ins", "li", "ol", "p", "pre", "q", "s", "span",
    "strike", "strong", "sub", "sup", "table", "tbody", "td", "tfoot", "th",
    "thead", "tr", "u", "ul",
]

DEFAULT_HTML_ALLOWED_ATTRIBUTES = {
    "*": ["class", "id", "title"],
    "a": ["href", "rel", "target"],
    "abbr": ["title"],
    "img": ["alt", "height", "src", "width"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}

DEFAULT_URL_ALLOWED_SCHEMES = [
    "http", "https", "ftp", "ftps", "mailto", "news", "irc", "gopher",
    "nntp", "feed", "telnet", "mms", "rtsp", "sms", "svn", "tel", "fax",
    "xmpp", "webcal", "urn",
]

_LIST_KEYS = frozenset({"html_allowed_tags", "url_allowed_schemes"})

# Strict mode: a bare string is not accepted where a list is expected.
_VALIDATORS: dict[str, TypeAdapter[Any]] = {
    "html_allowed_tags": TypeAdapter(list[str]),
    "html_allowed_attributes": TypeAdapter(dict[str, list[str]]),
    "url_allowed_schemes": TypeAdapter(list[str]),
}


def _validate(key: str, value: Any) -> Any:
    validator = _VALIDATORS.get(key)
    if validator is None:
        return value
    return validator.validate_python(value, strict=True)


class FieldsafeConfig:
    """Resolves configuration through the precedence chain.

    Built-in defaults, then ``[tool.fieldsafe]`` in ``pyproject.toml``,
    then ``FIELDSAFE_*`` environment variables, then keyword overrides.
    File and environment values of the wrong shape are logged and skipped;
    a keyword override of the wrong shape raises ``ConfigurationError``.
    """

    def __init__(self, project_file: str | Path = "pyproject.toml", **overrides: Any) -> None:
        self.project_file = Path(project_file)
        self._config: dict[str, Any] = {}
        self._load_defaults()
        self._load_project_config()
        self._load_env_vars()
        self._load_overrides(overrides)

    def _load_defaults(self) -> None:
        self._config = {
            "html_allowed_tags": list(DEFAULT_HTML_ALLOWED_TAGS),
            "html_allowed_attributes": {tag: list(attrs) for tag, attrs in DEFAULT_HTML_ALLOWED_ATTRIBUTES.items()},
            "url_allowed_schemes": list(DEFAULT_URL_ALLOWED_SCHEMES),
        }

    def _load_project_config(self) -> None:
        """Load from pyproject.toml [tool.fieldsafe]"""
        if not self.project_file.exists():
            return
        try:
            with open(self.project_file, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", self.project_file, e)
            return
        section = data.get("tool", {}).get("fieldsafe", {})
        if not isinstance(section, Mapping):
            logger.warning("Ignoring [tool.fieldsafe] in %s: expected a table", self.project_file)
            return
        for key, value in section.items():
            self._set_layer_value(str(self.project_file), key, value)

    def _load_env_vars(self) -> None:
        """Load from FIELDSAFE_* environment variables."""
        for key, value in os.environ.items():
            if not key.startswith("FIELDSAFE_"):
                continue
            config_key = key[10:].lower()
            if config_key == "html_allowed_attributes":
                try:
                    parsed = json.loads(value)
                except json.JSONDecodeError as e:
                    logger.warning("Ignoring malformed %s: %s", key, e)
                    continue
                self._set_layer_value(key, config_key, parsed)
            elif config_key in _LIST_KEYS:
                self._set_layer_value(key, config_key, [item.strip() for item in value.split(",") if item.strip()])
            else:
                self._config[config_key] = value

    def _load_overrides(self, overrides: Mapping[str, Any]) -> None:
        for key, value in overrides.items():
            try:
                self._config[key] = _validate(key, value)
            except ValidationError as e:
                raise ConfigurationError(
                    f"invalid value for config setting {key}",
                    code="E1006",
                    suggestion=Suggestion(
                        action="fix the setting",
                        fix=f"pass {key} in the same shape as its default",
                        example=f"{key}={self._config[key]!r}",
                    ),
                    details={"setting": key, "errors": e.errors(include_url=False)},
                ) from e

    def _set_layer_value(self, source: str, key: str, value: Any) -> None:
        try:
            self._config[key] = _validate(key, value)
        except ValidationError as e:
            logger.warning("Ignoring malformed %s from %s: %s", key, source, e)

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    @property
    def html_allowed_tags(self) -> list[str]:
        return list(self._config["html_allowed_tags"])

    @property
    def html_allowed_attributes(self) -> dict[str, list[str]]:
        return {tag: list(attrs) for tag, attrs in self._config["html_allowed_attributes"].items()}

    @property
    def url_allowed_schemes(self) -> list[str]:
        return [scheme.lower() for scheme in self._config["url_allowed_schemes"]]
