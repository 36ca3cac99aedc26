"""
Infrastructure layer for gitversioning.

Provides abstractions over external systems:
- GitClient: Git command execution
- RawDocument: Format-preserving XML documents
- read_model: Descriptor file loading
"""

from .git_client import GitClient
from .xml_document import RawDocument, RawElement
from .pom_reader import read_model, read_model_string

__all__ = [
    'GitClient',
    'RawDocument',
    'RawElement',
    'read_model',
    'read_model_string',
]
