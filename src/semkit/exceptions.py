"""
semkit Exception Hierarchy

Structured exceptions for the parse → chunk → snapshot pipeline.  Each
exception type maps to one failure mode so that callers (the CLI, the
directory pipeline, or an embedding host) can handle errors precisely
without parsing message strings.

Usage::

    from semkit.exceptions import SemkitError, SyntaxInvalidError

    try:
        parsed = parse_file("src/app.ts")
    except SyntaxInvalidError:
        print("Could not parse, skipping.")
    except SemkitError as exc:
        print(f"semkit error: {exc}")

Degraded parses are *not* errors: a file that parses with residual
syntax errors comes back with ``has_syntax_errors=True``.
"""


class SemkitError(Exception):
    """Base exception for all semkit errors."""


class ConfigError(SemkitError, ValueError):
    """Configuration is invalid (e.g. a non-positive worker count)."""


class UnsupportedInputError(SemkitError, ValueError):
    """The file extension is not one the parser accepts.

    Raised before any I/O or parsing happens, so there is never a
    partial result.
    """

    def __init__(self, extension: str, file_path: str = ""):
        self.extension = extension
        self.file_path = file_path
        shown = extension or "(none)"
        super().__init__(f"Unsupported file extension: {shown}")


class SyntaxInvalidError(SemkitError):
    """No usable syntax tree could be produced for a file.

    Fails only the call for that file; multi-file callers catch it and
    move on to the next file.
    """

    def __init__(self, file_path: str, reason: str = ""):
        self.file_path = file_path
        message = f"Unable to parse {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class SnapshotInputError(SemkitError, ValueError):
    """Snapshot targets are empty or span more than one file."""


class SourceIndexNotFoundError(SemkitError, LookupError):
    """A batch snapshot call has no source index for one of its files."""


class SymbolQueryError(SemkitError, ValueError):
    """A symbol query is empty or names nothing to look up."""


class SymbolNotFoundError(SemkitError, LookupError):
    """A symbol query matched no chunk.

    ``hint`` carries a "did you mean" message when near matches exist.
    """

    def __init__(self, query: str, hint: str = ""):
        self.query = query
        self.hint = hint
        super().__init__(hint or f'No symbol "{query}" found.')
