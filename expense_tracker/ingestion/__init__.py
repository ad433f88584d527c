"""Ingestion of expenses produced outside the request path."""

from expense_tracker.ingestion.ocr_listener import OcrEventHandler

__all__ = ["OcrEventHandler"]
