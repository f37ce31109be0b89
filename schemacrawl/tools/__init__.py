"""Output options, resources and commands.

Commands and executables live in ``schemacrawl.tools.commands`` and
``schemacrawl.tools.executable``.
"""

from .options import OutputOptions, build_output_options, create_input_resource, output_options_from_config
from .resources import (
    CompressedFileInputResource,
    CompressedFileOutputResource,
    ConsoleOutputResource,
    FileInputResource,
    FileOutputResource,
    InputResource,
    OutputResource,
    PackageInputResource,
    StringInputResource,
    StringOutputResource,
    WriterOutputResource,
)

__all__ = [
    "CompressedFileInputResource",
    "CompressedFileOutputResource",
    "ConsoleOutputResource",
    "FileInputResource",
    "FileOutputResource",
    "InputResource",
    "OutputOptions",
    "OutputResource",
    "PackageInputResource",
    "StringInputResource",
    "StringOutputResource",
    "WriterOutputResource",
    "build_output_options",
    "create_input_resource",
    "output_options_from_config",
]
