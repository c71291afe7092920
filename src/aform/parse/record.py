"""Exceptions shared by the file format parsers."""


class FileFormatError(Exception):
    """Exception raised when a file can not be parsed."""


class RecordError(FileFormatError):
    """Exception raised when a record is bad."""
