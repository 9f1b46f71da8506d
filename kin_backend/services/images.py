import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def image_path(upload_dir: str, folder: str, filename: str) -> Path:
    # filenames come from request bodies; never let them escape the folder
    return Path(upload_dir) / folder / Path(filename).name


def delete_image(upload_dir: str, folder: str, filename: str | None) -> bool:
    """Remove a stored image. Failures are logged, never raised."""
    if not filename:
        return False
    path = image_path(upload_dir, folder, filename)
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning("Image %s already gone", path)
        return False
    except OSError:
        logger.exception("Failed to remove image %s", path)
        return False
    logger.info("File removed: %s", path)
    return True
