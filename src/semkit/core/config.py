"""
semkit Configuration Module

Instance-based configuration for symbol extraction, chunking, and the
directory pipeline.  Nothing here is read at import time: build a
config explicitly or snapshot the environment with
:meth:`SemkitConfig.from_env`.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


# Extension → tree-sitter grammar.  The TSX grammar is a superset that
# also accepts plain JavaScript and JSX.
GRAMMAR_BY_EXTENSION = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "tsx",
    ".jsx": "tsx",
    ".mjs": "tsx",
    ".cjs": "tsx",
}


@dataclass
class SemkitConfig:
    """
    Instance-based configuration for semkit.

    Each ``SemkitConfig`` instance is self-contained and can be passed
    through the call stack, so two pipelines with different settings can
    run side by side in one process.

    Create from environment variables::

        config = SemkitConfig.from_env()

    Or with explicit values::

        config = SemkitConfig(max_workers=8, token_budget=16000)
    """

    # ── File Processing ───────────────────────────────────────────
    target_extensions: frozenset = frozenset(GRAMMAR_BY_EXTENSION)
    exclude_dirs: frozenset = frozenset((
        "node_modules", ".git", "dist", "build", "out",
        "coverage", ".next", ".turbo", ".cache",
    ))
    max_file_size_mb: int = 2
    max_workers: int = 4

    # ── Signatures & Names ────────────────────────────────────────
    type_alias_max_length: int = 100
    fallback_signature_max_length: int = 200
    expression_signature_max_length: int = 120
    expression_name_max_length: int = 60
    export_preview_max_length: int = 80

    # ── Chunking ──────────────────────────────────────────────────
    chunk_id_length: int = 16
    chars_per_token: int = 4
    token_budget: int = 32000

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "SemkitConfig":
        """Build a config snapshot from current environment variables."""
        return cls(
            max_workers=int(os.getenv("SEMKIT_MAX_WORKERS", "4")),
            max_file_size_mb=int(os.getenv("SEMKIT_MAX_FILE_SIZE_MB", "2")),
            token_budget=int(os.getenv("SEMKIT_TOKEN_BUDGET", "32000")),
            log_level=os.getenv("SEMKIT_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Check numeric limits and extensions.

        Raises :class:`~semkit.exceptions.ConfigError` on failure.
        """
        from semkit.exceptions import ConfigError

        positive = {
            "max_workers": self.max_workers,
            "max_file_size_mb": self.max_file_size_mb,
            "chunk_id_length": self.chunk_id_length,
            "chars_per_token": self.chars_per_token,
            "token_budget": self.token_budget,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

        if not 8 <= self.chunk_id_length <= 64:
            raise ConfigError(
                f"chunk_id_length must be between 8 and 64 (sha256 hex), got {self.chunk_id_length}"
            )

        unknown = sorted(ext for ext in self.target_extensions if ext not in GRAMMAR_BY_EXTENSION)
        if unknown:
            raise ConfigError(
                f"No grammar for extension(s): {', '.join(unknown)}.\n"
                f"  Supported: {', '.join(sorted(GRAMMAR_BY_EXTENSION))}"
            )
        return True

    def grammar_for(self, file_path: str | Path) -> Optional[str]:
        """Return the grammar name for *file_path*, or None if unsupported."""
        ext = Path(file_path).suffix.lower()
        if ext not in self.target_extensions:
            return None
        return GRAMMAR_BY_EXTENSION.get(ext)

    def max_file_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024
