"""imgs3 - S3 screenshot uploader."""

__version__ = "0.1.0"
