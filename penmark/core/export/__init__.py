"""
Export of annotated documents.
"""
from .compositor import ExportCompositor, image_to_png
from .files import DEFAULT_EXPORT_NAME, suggest_export_path, write_export

__all__ = [
    "ExportCompositor",
    "image_to_png",
    "DEFAULT_EXPORT_NAME",
    "suggest_export_path",
    "write_export",
]
