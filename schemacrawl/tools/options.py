"""Output options for operations."""

import codecs
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from ..errors import ConfigurationError
from .resources import (
    ConsoleOutputResource,
    FileInputResource,
    InputResource,
    OutputResource,
    PackageInputResource,
    StringInputResource,
)

logger = logging.getLogger(__name__)

INPUT_ENCODING_KEY = "schemacrawler.encoding.input"
OUTPUT_ENCODING_KEY = "schemacrawler.encoding.output"

DEFAULT_ENCODING = "utf-8"
DEFAULT_OUTPUT_FORMAT = "text"


@dataclass(frozen=True)
class OutputOptions:
    """Where an operation reads its input from and writes its output to."""

    input_resource: InputResource = field(default_factory=StringInputResource)
    input_encoding: str = DEFAULT_ENCODING
    output_resource: OutputResource = field(default_factory=ConsoleOutputResource)
    output_encoding: str = DEFAULT_ENCODING
    output_format: str = DEFAULT_OUTPUT_FORMAT


def _encoding(value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(str(value).strip()).name
    except LookupError as e:
        raise ConfigurationError(f"Unknown character encoding: {value}") from e


def create_input_resource(name: Optional[str]) -> InputResource:
    """Resolve an input resource name.

    Tries a file path, then a resource bundled with the package, and
    falls back to an empty string resource. Never raises.
    """
    if not name or not name.strip():
        return StringInputResource("")
    try:
        if Path(name).is_file():
            return FileInputResource(name)
    except OSError as e:
        logger.debug(f"Cannot check for input file {name}: {e}")
    resource = PackageInputResource(name)
    if resource.exists():
        return resource
    logger.debug(f"Input resource {name} not found, using an empty resource")
    return StringInputResource("")


def build_output_options(
    input_resource: Optional[InputResource] = None,
    input_encoding: Optional[str] = None,
    output_resource: Optional[OutputResource] = None,
    output_encoding: Optional[str] = None,
    output_format: Optional[str] = None,
) -> OutputOptions:
    """Build output options, filling unset values with defaults.

    Args:
        input_resource: Input resource, an empty string resource when None
        input_encoding: Input character encoding, UTF-8 when blank
        output_resource: Output resource, the console when None
        output_encoding: Output character encoding, UTF-8 when blank
        output_format: Output format, plain text when blank

    Returns:
        Immutable output options
    """
    return OutputOptions(
        input_resource=input_resource if input_resource is not None else StringInputResource(""),
        input_encoding=_encoding(input_encoding),
        output_resource=output_resource if output_resource is not None else ConsoleOutputResource(),
        output_encoding=_encoding(output_encoding),
        output_format=output_format.strip() if output_format and output_format.strip() else DEFAULT_OUTPUT_FORMAT,
    )


def output_options_from_config(
    config: Optional[Mapping[str, Any]],
    output_resource: Optional[OutputResource] = None,
    output_format: Optional[str] = None,
) -> OutputOptions:
    """Build output options from generic key/value configuration.

    Reads the input and output encodings; absent or blank values mean UTF-8.
    """
    config = config or {}
    return build_output_options(
        input_encoding=config.get(INPUT_ENCODING_KEY),
        output_resource=output_resource,
        output_encoding=config.get(OUTPUT_ENCODING_KEY),
        output_format=output_format,
    )
