# compliance_engine/version_resolver.py
# Selects the authoritative ("latest") document of each series

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Union

from .models import ComplianceStatus, Document, DocumentType, SeriesKey, Vehicle
from .status_calculator import EXPIRY_WARNING_DAYS, compute_status, days_remaining

DocumentSource = Union[Vehicle, Iterable[Document]]

_TYPE_ORDER = {doc_type: index for index, doc_type in enumerate(DocumentType)}


@dataclass(frozen=True)
class ResolvedDocument:
    """Latest document of a series enriched with its status at evaluation time"""
    document: Document
    status: ComplianceStatus
    days_remaining: Optional[int]

    @property
    def series_key(self) -> SeriesKey:
        return self.document.series_key


def _documents(source: DocumentSource) -> List[Document]:
    if isinstance(source, Vehicle):
        return list(source.documents)
    return list(source)


def _recency(document: Document):
    return (document.uploaded_at, document.sequence)


def series_sort_key(key: SeriesKey):
    return (_TYPE_ORDER[key.document_type], key.custom_type_name is not None, key.custom_type_name or "")


def resolve_latest_document(
    source: DocumentSource,
    document_type: DocumentType,
    custom_type_name: Optional[str] = None,
) -> Optional[Document]:
    """
    Latest document of one series, or None if the series was never uploaded.

    The winner is the most recent upload; equal upload timestamps fall back
    to the most recently assigned sequence number.
    """
    key = SeriesKey.of(document_type, custom_type_name)
    matches = [doc for doc in _documents(source) if doc.series_key == key]
    if not matches:
        return None
    return max(matches, key=_recency)


def series_keys(source: DocumentSource) -> List[SeriesKey]:
    """Every series present in the document history, in a stable order"""
    keys = {doc.series_key for doc in _documents(source)}
    return sorted(keys, key=series_sort_key)


def latest_documents(source: DocumentSource) -> Dict[SeriesKey, Document]:
    """Latest document per series"""
    latest: Dict[SeriesKey, Document] = {}
    for doc in _documents(source):
        current = latest.get(doc.series_key)
        if current is None or _recency(doc) > _recency(current):
            latest[doc.series_key] = doc
    return {key: latest[key] for key in sorted(latest, key=series_sort_key)}


def resolve_document(
    document: Document,
    today: Optional[date] = None,
    warning_days: int = EXPIRY_WARNING_DAYS,
) -> ResolvedDocument:
    """Attach the status computed now; stored status is never trusted"""
    return ResolvedDocument(
        document=document,
        status=compute_status(document.expiry, today, warning_days),
        days_remaining=days_remaining(document.expiry, today),
    )


def resolve_latest_documents(
    source: DocumentSource,
    today: Optional[date] = None,
    warning_days: int = EXPIRY_WARNING_DAYS,
) -> Dict[SeriesKey, ResolvedDocument]:
    return {
        key: resolve_document(doc, today, warning_days)
        for key, doc in latest_documents(source).items()
    }
