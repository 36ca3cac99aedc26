"""
Service layer for gitversioning.

Services orchestrate domain logic and infrastructure:
- VersioningService: Versions the descriptors of one build
"""

from .versioning_service import VersioningService, BuildContext, GIT_VERSIONING_POM_NAME

__all__ = [
    'VersioningService',
    'BuildContext',
    'GIT_VERSIONING_POM_NAME',
]
