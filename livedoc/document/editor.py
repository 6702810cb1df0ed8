"""Editor: the single path through which every document edit is applied."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .decorations import Decoration
from .model import Document
from .transform import ADD_TO_HISTORY, Transaction

logger = logging.getLogger(__name__)


class Editor:
    """Holds the current document and applies transactions to it.

    Plugins are plain objects; the editor looks for these optional hooks:

    - ``filter_transaction(tr, editor) -> bool``: consulted before commit;
      any ``False`` drops the whole transaction.
    - ``apply(tr, old_doc, new_doc)``: called after commit.
    - ``init_view(editor)``: called once when the plugin is added.
    - ``decorations(doc) -> list``: live overlay for the current document.

    Transactions carrying ``ADD_TO_HISTORY = False`` are committed but kept
    out of ``history``.
    """

    def __init__(self, doc: Optional[Document] = None, plugins: tuple = ()) -> None:
        self.doc = doc if doc is not None else Document()
        self.plugins: list[Any] = []
        self.history: list[Transaction] = []
        for plugin in plugins:
            self.add_plugin(plugin)

    @property
    def tr(self) -> Transaction:
        """A fresh transaction against the current document."""
        return Transaction(self.doc)

    def add_plugin(self, plugin: Any) -> None:
        self.plugins.append(plugin)
        init_view = getattr(plugin, "init_view", None)
        if init_view is not None:
            init_view(self)

    def dispatch(self, tr: Transaction) -> bool:
        """Commit *tr* unless a plugin filter rejects it.

        Returns ``True`` when the transaction was applied.
        """
        if tr.before is not self.doc:
            raise ValueError("transaction was built against an outdated document")

        for plugin in self.plugins:
            filter_transaction = getattr(plugin, "filter_transaction", None)
            if filter_transaction is not None and not filter_transaction(tr, self):
                logger.debug(
                    "Transaction with %d step(s) rejected by %s",
                    len(tr.steps),
                    type(plugin).__name__,
                )
                return False

        old_doc = self.doc
        self.doc = tr.doc
        if tr.doc_changed and tr.get_meta(ADD_TO_HISTORY, True):
            self.history.append(tr)

        for plugin in list(self.plugins):
            apply = getattr(plugin, "apply", None)
            if apply is not None:
                apply(tr, old_doc, self.doc)
        return True

    def decorations(self) -> list[Decoration]:
        result: list[Decoration] = []
        for plugin in self.plugins:
            provider = getattr(plugin, "decorations", None)
            if provider is not None:
                result.extend(provider(self.doc) or ())
        return result
