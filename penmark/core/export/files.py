"""
Naming and writing exported PDF files.
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

DEFAULT_EXPORT_NAME = "annotated.pdf"


def suggest_export_path(
    source_path: Optional[Union[str, Path]], filename: str = DEFAULT_EXPORT_NAME
) -> Path:
    """Place the export next to the source file, or in the working directory."""
    if source_path:
        return Path(source_path).resolve().parent / filename
    return Path.cwd() / filename


def write_export(data: bytes, output_path: Union[str, Path]) -> Path:
    """
    Write exported bytes through a temp file in the target directory, then
    move it into place so a failed write never leaves a truncated PDF.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path = tempfile.mkstemp(suffix='.pdf', dir=output_path.parent)
    try:
        with os.fdopen(temp_fd, 'wb') as f:
            f.write(data)
        shutil.move(temp_path, output_path)
    except OSError:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise
    return output_path
