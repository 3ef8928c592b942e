"""
Conversation document service.

Orchestrates save/read/append/delete/list/search against a Storage,
using the frontmatter codec and the path deriver. Operations are
synchronous, hold no state between calls, and never retry.

Assumes one writer per document at a time: append is a plain
read-modify-write, and save overwrites whatever already sits at the
derived path.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .errors import ChatHubError, InvalidSourceError, OperationCancelledError
from .frontmatter import (
    DEFAULT_DESCRIPTION_LENGTH,
    extract_description,
    new_metadata,
    parse,
    render_with_content,
    valid_source,
)
from .naming import generate_conversation_id, generate_path
from .search import match_document
from .storage import Storage
from .types import (
    AppendResult,
    CancelToken,
    ConversationDocument,
    ConversationSummary,
    DeleteResult,
    DocumentOutcome,
    ListResult,
    SaveResult,
    SearchOutput,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 20

APPEND_SEPARATOR = "\n\n"


class ConversationService:
    """
    Save, read, list, search, append to, and delete conversation documents.

    Args:
        storage: Storage wrapper over the configured backend
        clock: Returns the current UTC time (injected for tests)
        id_generator: Returns a fresh conversation ID (injected for tests)
        description_length: Max length of descriptions derived from content
    """

    def __init__(
        self,
        storage: Storage,
        *,
        clock: Callable[[], datetime] = utc_now,
        id_generator: Callable[[], str] = generate_conversation_id,
        description_length: int = DEFAULT_DESCRIPTION_LENGTH,
    ):
        self._storage = storage
        self._clock = clock
        self._id_generator = id_generator
        self._description_length = description_length

    @property
    def storage(self) -> Storage:
        return self._storage

    def close(self) -> None:
        self._storage.close()

    # -------------------------------------------------------------------------
    # Write operations
    # -------------------------------------------------------------------------

    def save(
        self,
        title: str,
        content: str,
        source: str,
        tags: Optional[list[str]] = None,
        categories: Optional[list[str]] = None,
        description: Optional[str] = None,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> SaveResult:
        """
        Save a new conversation document.

        The path is derived from source, title, and today's date. An
        existing document at that path is overwritten.

        Raises:
            InvalidSourceError: source is not a supported platform
            StorageError: The backend write failed
        """
        if not valid_source(source):
            raise InvalidSourceError(source)

        now = self._clock()
        meta = new_metadata(title, source, now=now, conversation_id=self._id_generator())
        meta.tags = list(tags or [])
        meta.categories = list(categories or [])
        if description:
            meta.description = description
        else:
            meta.description = extract_description(content, self._description_length)

        path = generate_path(self._storage.folder, source, title, now)
        document = render_with_content(meta, content)

        self._storage.save(path, document, cancel=cancel)
        logger.info("Saved conversation %s (%s)", path, meta.conversation_id)
        return SaveResult(path=path, conversation_id=meta.conversation_id)

    def append(self, path: str, content: str, *, cancel: Optional[CancelToken] = None) -> AppendResult:
        """
        Append content to an existing conversation.

        With a header, ``lastmod`` is set to now and ``message_count`` goes
        up by one (one call is counted as one message). Without a header the
        content is appended to the raw document and no header is created.

        Raises:
            DocumentNotFoundError: path does not exist
            InvalidFrontmatterError: The existing header is malformed, or the
                document is not valid UTF-8 (it is left untouched)
        """
        existing = self._storage.read(path, cancel=cancel)
        meta, body = parse(existing, strict=True)

        if meta is None:
            updated = existing + (APPEND_SEPARATOR + content).encode("utf-8")
            self._storage.save(path, updated, cancel=cancel)
            logger.info("Appended to %s (no frontmatter)", path)
            return AppendResult(path=path)

        meta.lastmod = self._clock()
        meta.message_count += 1
        updated = render_with_content(meta, body + APPEND_SEPARATOR + content)

        self._storage.save(path, updated, cancel=cancel)
        logger.info("Appended to %s (message_count=%d)", path, meta.message_count)
        return AppendResult(path=path, message_count=meta.message_count)

    def delete(self, path: str, *, cancel: Optional[CancelToken] = None) -> DeleteResult:
        """Delete a conversation. A missing path is reported, not raised."""
        if not self._storage.exists(path, cancel=cancel):
            return DeleteResult(deleted=False, message=f"conversation not found: {path}")

        self._storage.delete(path, cancel=cancel)
        logger.info("Deleted conversation %s", path)
        return DeleteResult(deleted=True, message=f"deleted: {path}")

    # -------------------------------------------------------------------------
    # Read operations
    # -------------------------------------------------------------------------

    def read(self, path: str, *, cancel: Optional[CancelToken] = None) -> ConversationDocument:
        """
        Read a conversation and its metadata.

        Raises:
            DocumentNotFoundError: path does not exist
            InvalidFrontmatterError: The header is malformed
        """
        raw = self._storage.read(path, cancel=cancel)
        meta, body = parse(raw)
        if meta is None:
            return ConversationDocument(path=path, content=body, body=body)
        return ConversationDocument(
            path=path,
            content=raw.decode("utf-8", errors="replace"),
            body=body,
            metadata=meta,
        )

    def _candidates(self, source: Optional[str], cancel: Optional[CancelToken]) -> list[str]:
        if source:
            return self._storage.list_by_source(source, cancel=cancel)
        return self._storage.list_conversations(cancel=cancel)

    def _summarize(self, path: str, cancel: Optional[CancelToken]) -> DocumentOutcome:
        """Load one document's summary, or a skip with the reason it failed."""
        try:
            raw = self._storage.read(path, cancel=cancel)
            meta, _ = parse(raw)
        except OperationCancelledError:
            raise
        except (ChatHubError, ValueError) as e:
            return DocumentOutcome.skipped(path, str(e))

        if meta is None:
            return DocumentOutcome.ok(path, ConversationSummary(path=path))
        return DocumentOutcome.ok(path, ConversationSummary(
            path=path,
            title=meta.title,
            date=meta.date.strftime("%Y-%m-%d") if meta.date else "",
            source=meta.source,
            tags=list(meta.tags),
            description=meta.description,
        ))

    def list_outcomes(
        self,
        source: Optional[str] = None,
        limit: int = 0,
        offset: int = 0,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> tuple[list[DocumentOutcome], int, bool]:
        """Per-document outcomes for one page, plus total and has_more."""
        if limit <= 0:
            limit = DEFAULT_LIST_LIMIT
        offset = max(0, offset)

        files = self._candidates(source, cancel)
        total = len(files)

        start = min(offset, total)
        end = min(start + limit, total)
        outcomes = [self._summarize(path, cancel) for path in files[start:end]]
        return outcomes, total, end < total

    def list(
        self,
        source: Optional[str] = None,
        limit: int = 0,
        offset: int = 0,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> ListResult:
        """
        List conversations in the order the backend returns them.

        ``total`` counts every matching document before pagination;
        documents that fail to load are left out of the page.
        """
        outcomes, total, has_more = self.list_outcomes(source, limit, offset, cancel=cancel)
        conversations = []
        for outcome in outcomes:
            if outcome.is_ok:
                conversations.append(outcome.value)
            else:
                logger.warning("Skipping %s in list: %s", outcome.path, outcome.reason)
        return ListResult(conversations=conversations, total=total, has_more=has_more)

    def _search_one(self, path: str, query: str, cancel: Optional[CancelToken]) -> DocumentOutcome:
        try:
            raw = self._storage.read(path, cancel=cancel)
            result = match_document(path, raw, query)
        except OperationCancelledError:
            raise
        except (ChatHubError, ValueError) as e:
            return DocumentOutcome.skipped(path, str(e))
        return DocumentOutcome.ok(path, result)

    def search(
        self,
        query: str,
        source: Optional[str] = None,
        limit: int = 0,
        *,
        cancel: Optional[CancelToken] = None,
    ) -> SearchOutput:
        """
        Case-insensitive substring search, in listing order.

        Scanning stops once ``limit`` documents have matched, so results
        are the first matches found rather than the best-scoring ones, and
        ``total`` is the number of results returned.
        """
        if limit <= 0:
            limit = DEFAULT_SEARCH_LIMIT
        query = query.lower()

        results = []
        for path in self._candidates(source, cancel):
            outcome = self._search_one(path, query, cancel)
            if not outcome.is_ok:
                logger.warning("Skipping %s in search: %s", outcome.path, outcome.reason)
                continue
            if outcome.value is None:
                continue
            results.append(outcome.value)
            if len(results) >= limit:
                break

        return SearchOutput(results=results, total=len(results))
