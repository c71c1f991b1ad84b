"""
Core business exceptions for the synchronization pipeline.

This module defines a hierarchy of custom exceptions to allow for granular
error handling and clear separation of failure domains.
"""


class RedbookSyncError(Exception):
    """Base exception for all component-specific errors."""
    pass


# --- Configuration Errors ---

class ConfigurationError(RedbookSyncError):
    """Raised for errors related to application configuration."""
    pass


# --- Infrastructure Errors ---

class InfrastructureError(RedbookSyncError):
    """Base class for errors related to external systems (network, store)."""
    pass


class NetworkError(InfrastructureError):
    """Raised when a remote listing or archive cannot be fetched."""
    pass


class ListingError(NetworkError):
    """Raised when a yearly index page cannot be fetched."""
    pass


class DownloadError(NetworkError):
    """Raised when an archive download fails."""
    pass


class StoreWriteError(InfrastructureError):
    """Raised when the record store cannot be reached or written."""
    pass


# --- Domain/Business Logic Errors ---

class DomainError(RedbookSyncError):
    """Base class for errors related to business logic failures."""
    pass


class ExtractionError(DomainError):
    """Raised when a cached archive cannot be unpacked."""
    pass


class ParseError(DomainError):
    """Raised when a document lacks a required field or is malformed."""
    pass


class LedgerError(DomainError):
    """Raised when the synchronization ledger cannot be read."""
    pass


class ProcessingError(DomainError):
    """Raised when a processed-record file cannot be written or read back."""
    pass
