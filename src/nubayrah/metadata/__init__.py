# ABOUTME: Metadata package holding the bibliographic data model.
# ABOUTME: Exports the Metadata and Contributor dataclasses used throughout nubayrah.

from nubayrah.metadata.types import Contributor, Metadata

__all__ = [
    "Contributor",
    "Metadata",
]
