"""Orchestrator package - coordinates deploy sessions."""
from .core import S3Uploader
from .file_collector import Bundle, FileCollector, iter_bundle_files
from .file_filter import FileFilter
from .reconcile import RemoteReconciler

__all__ = ["S3Uploader", "Bundle", "FileCollector", "FileFilter", "RemoteReconciler", "iter_bundle_files"]
