"""
semkit Parser Provider

Owns the tree-sitter parsers used to turn source text into syntax
trees.  A tree-sitter ``Parser`` is not safe to drive from two threads
at once, so a :class:`ParserProvider` must only be used by one thread
at a time.  Code that parses on several threads should hold a
:class:`ProviderPool`, which hands every thread its own provider.
"""

import logging
import threading
from typing import Dict

try:
    import tree_sitter_typescript
    from tree_sitter import Language, Parser, Tree
except ImportError as e:
    raise ImportError(
        "tree-sitter grammars are required. "
        "Install with: pip install tree-sitter tree-sitter-typescript"
    ) from e

logger = logging.getLogger(__name__)


_LANGUAGE_FACTORIES = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}


class ParserProvider:
    """
    Lazily builds and caches one tree-sitter parser per grammar.

    Providers are cheap to create and are meant to be injected: one per
    worker thread or per batch, never a process-wide singleton.
    """

    def __init__(self):
        self._languages: Dict[str, Language] = {}
        self._parsers: Dict[str, Parser] = {}

    @staticmethod
    def supported_grammars() -> list:
        return sorted(_LANGUAGE_FACTORIES)

    def get_language(self, grammar: str) -> Language:
        if grammar not in self._languages:
            factory = _LANGUAGE_FACTORIES.get(grammar)
            if factory is None:
                raise ValueError(f"Unknown grammar: {grammar}")
            self._languages[grammar] = Language(factory())
            logger.debug(f"Loaded {grammar} grammar")
        return self._languages[grammar]

    def get_parser(self, grammar: str) -> Parser:
        """Return the cached parser for *grammar*, creating it on first use."""
        if grammar not in self._parsers:
            self._parsers[grammar] = Parser(self.get_language(grammar))
        return self._parsers[grammar]

    def parse(self, source: bytes, grammar: str) -> Tree | None:
        return self.get_parser(grammar).parse(source)


class ProviderPool:
    """Thread-local :class:`ParserProvider` instances.

    Each thread that calls :meth:`get` receives its own provider, created
    on first use and reused for every later parse on that thread.
    """

    def __init__(self):
        self._local = threading.local()
        self._lock = threading.Lock()
        self._created = 0

    def get(self) -> ParserProvider:
        provider = getattr(self._local, "provider", None)
        if provider is None:
            provider = ParserProvider()
            self._local.provider = provider
            with self._lock:
                self._created += 1
        return provider

    @property
    def created(self) -> int:
        """Number of providers handed out so far (one per thread)."""
        return self._created
