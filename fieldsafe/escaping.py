"""Default sanitize and escape transformations for field values.

Every public transformation accepts a field value (``str``, ``list[str]`` or
``dict[str, str]``) and returns a value of the same shape; text is
transformed element-wise. Anything else is rejected with
:class:`~fieldsafe.errors.ConfigurationError`.
"""

from __future__ import annotations

import functools
import html
import re
from typing import Any, Callable, Iterable, Mapping
from urllib.parse import quote, urlsplit

import bleach
from email_validator import EmailNotValidError, validate_email

from fieldsafe.config import (
    DEFAULT_HTML_ALLOWED_ATTRIBUTES,
    DEFAULT_HTML_ALLOWED_TAGS,
    DEFAULT_URL_ALLOWED_SCHEMES,
)
from fieldsafe.errors import ConfigurationError

SCRIPT_STYLE_PATTERN = re.compile(r"<(script|style)[^>]*?>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
WHITESPACE_PATTERN = re.compile(r"[\r\n\t ]+")
INLINE_WHITESPACE_PATTERN = re.compile(r"[\t ]+")
KEY_DISALLOWED_PATTERN = re.compile(r"[^a-z0-9_\-]")
URL_DISALLOWED_PATTERN = re.compile(r"[^a-zA-Z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]\x80-\uffff]")
FILENAME_SEPARATOR_PATTERN = re.compile(r"[\r\n\t \-]+")

MAX_STRIP_PASSES = 5

FILENAME_SPECIAL_CHARS = frozenset(
    "?[]/\\=<>:;,'\"&$#*()|~`!{}%+’«»”“\x00"
)

# Characters left intact when percent-encoding an already sanitized URL.
URL_SAFE_CHARS = "/:?#[]@!$&'()*+,;=%~-._|"

_HTML_ENTITIES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#039;",
})

_JS_ENTITIES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
})

# &amp; must be decoded last so "&amp;lt;" becomes "&lt;", not "<".
_ENTITY_DECODES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
    ("&#39;", "'"),
    ("&#x27;", "'"),
    ("&apos;", "'"),
    ("&amp;", "&"),
)


def text_transform(func: Callable[..., str]) -> Callable[..., Any]:
    """Lift a ``str -> str`` transformation to the field value variant."""

    @functools.wraps(func)
    def wrapper(value: Any, *args: Any, **kwargs: Any) -> Any:
        if isinstance(value, str):
            return func(value, *args, **kwargs)
        if isinstance(value, list):
            return [func(_require_text(item, func.__name__), *args, **kwargs) for item in value]
        if isinstance(value, dict):
            return {
                str(key): func(_require_text(item, func.__name__), *args, **kwargs)
                for key, item in value.items()
            }
        raise ConfigurationError(
            f"{func.__name__} expects text, a list of text or a mapping of text; got {type(value).__name__}",
            code="E1003",
            details={"transformation": func.__name__, "shape": type(value).__name__},
        )

    return wrapper


def _require_text(item: Any, name: str) -> str:
    if not isinstance(item, str):
        raise ConfigurationError(
            f"{name} expects text elements; got {type(item).__name__}",
            code="E1003",
            details={"transformation": name, "shape": type(item).__name__},
        )
    return item


def _strip_markup(value: str) -> str:
    """Strip tags, then decode entities, until decoding yields no new markup.

    Entity-encoded markup such as ``&lt;script&gt;`` is stripped on the pass
    after it is decoded. Input still producing markup after
    ``MAX_STRIP_PASSES`` is returned entity-encoded.
    """

    cleaned = value
    for _ in range(MAX_STRIP_PASSES):
        # bleach turns control characters into "?", so they go first.
        value = CONTROL_CHAR_PATTERN.sub("", value)
        cleaned = bleach.clean(
            SCRIPT_STYLE_PATTERN.sub("", value),
            tags=frozenset(),
            attributes={},
            strip=True,
            strip_comments=True,
        )
        decoded = html.unescape(cleaned)
        if decoded == value:
            return decoded
        value = decoded
    return cleaned


@text_transform
def sanitize_text_field(value: str) -> str:
    """Strip all markup and collapse the result to a single line of text."""

    text = _strip_markup(value)
    text = WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


@text_transform
def sanitize_textarea_field(value: str) -> str:
    """Strip all markup but keep line breaks."""

    text = _strip_markup(value.replace("\r\n", "\n").replace("\r", "\n"))
    text = INLINE_WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


@text_transform
def sanitize_email(value: str) -> str:
    """Return the normalized address, or an empty string when it is invalid."""

    candidate = value.strip()
    if not candidate:
        return ""
    try:
        return validate_email(candidate, check_deliverability=False).normalized
    except EmailNotValidError:
        return ""


@text_transform
def sanitize_url(value: str, protocols: Iterable[str] = DEFAULT_URL_ALLOWED_SCHEMES) -> str:
    """Normalize a URL and drop it entirely when its scheme is not allowed."""

    url = value.strip().replace(" ", "%20")
    url = URL_DISALLOWED_PATTERN.sub("", url)
    if not url:
        return ""
    if ":" in url.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]:
        scheme = urlsplit(url).scheme.lower()
        if scheme not in {protocol.lower() for protocol in protocols}:
            return ""
    return url


@text_transform
def sanitize_key(value: str) -> str:
    return KEY_DISALLOWED_PATTERN.sub("", value.lower())


@text_transform
def sanitize_file_name(value: str) -> str:
    """Remove path separators and characters that are unsafe in file names."""

    name = CONTROL_CHAR_PATTERN.sub("", value)
    name = name.replace("%20", " ")
    name = "".join(char for char in name if char not in FILENAME_SPECIAL_CHARS)
    name = FILENAME_SEPARATOR_PATTERN.sub("-", name)
    return name.strip(".-_")


@text_transform
def filter_html(
    value: str,
    tags: Iterable[str] = DEFAULT_HTML_ALLOWED_TAGS,
    attributes: Mapping[str, Iterable[str]] = DEFAULT_HTML_ALLOWED_ATTRIBUTES,
    protocols: Iterable[str] = DEFAULT_URL_ALLOWED_SCHEMES,
) -> str:
    """Keep only allow-listed tags and attributes, stripping everything else."""

    return bleach.clean(
        SCRIPT_STYLE_PATTERN.sub("", CONTROL_CHAR_PATTERN.sub("", value)),
        tags=frozenset(tags),
        attributes={tag: list(attrs) for tag, attrs in attributes.items()},
        protocols=frozenset(protocols),
        strip=True,
        strip_comments=True,
    )


@text_transform
def escape_html(value: str) -> str:
    return value.translate(_HTML_ENTITIES)


@text_transform
def escape_attr(value: str) -> str:
    return value.translate(_HTML_ENTITIES)


@text_transform
def escape_textarea(value: str) -> str:
    # Newlines survive; only markup delimiters and quotes are encoded.
    return value.translate(_HTML_ENTITIES)


@text_transform
def escape_url(value: str, protocols: Iterable[str] = DEFAULT_URL_ALLOWED_SCHEMES) -> str:
    """Sanitize, percent-encode and entity-encode a URL for href/src attributes."""

    url = sanitize_url(value, protocols)
    if not url:
        return ""
    return quote(url, safe=URL_SAFE_CHARS).translate(_HTML_ENTITIES)


@text_transform
def escape_js(value: str) -> str:
    """Escape text for use inside a single- or double-quoted script string."""

    text = value.translate(_JS_ENTITIES)
    text = text.replace("\\", "\\\\").replace("'", "\\'")
    return text.replace("\r", "").replace("\n", "\\n")


@text_transform
def decode_entities(value: str) -> str:
    """Inverse of ``escape_html`` for the quote-inclusive entity set."""

    for entity, char in _ENTITY_DECODES:
        value = value.replace(entity, char)
    return value


TRANSFORMATIONS: dict[str, Callable[..., Any]] = {
    "sanitize_text_field": sanitize_text_field,
    "sanitize_textarea_field": sanitize_textarea_field,
    "sanitize_email": sanitize_email,
    "sanitize_url": sanitize_url,
    "sanitize_key": sanitize_key,
    "sanitize_file_name": sanitize_file_name,
    "filter_html": filter_html,
    "escape_html": escape_html,
    "escape_attr": escape_attr,
    "escape_textarea": escape_textarea,
    "escape_url": escape_url,
    "escape_js": escape_js,
}
