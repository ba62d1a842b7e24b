from pathlib import Path
import time
from uuid import uuid4

from config.settings import settings

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".bmp", ".webp"}

PROJECT_SUBDIRS = (
    Path("images") / "original",
    Path("images") / "labeled",
    Path("annotations"),
    Path("form"),
)


def get_project_dir(product_number: str) -> Path:
    """Get project directory path for a session"""
    return Path(settings.PROJECTS_DIR) / f"project-{product_number}"


def get_original_images_dir(product_number: str) -> Path:
    """Get directory holding uploaded originals"""
    return get_project_dir(product_number) / "images" / "original"


def get_labeled_images_dir(product_number: str) -> Path:
    """Get directory holding rendered composites"""
    return get_project_dir(product_number) / "images" / "labeled"


def get_annotations_dir(product_number: str) -> Path:
    return get_project_dir(product_number) / "annotations"


def get_form_dir(product_number: str) -> Path:
    return get_project_dir(product_number) / "form"


def ensure_project_dirs(product_number: str) -> Path:
    """Create the per-session directory tree"""
    project_dir = get_project_dir(product_number)
    for subdir in PROJECT_SUBDIRS:
        ensure_dir(project_dir / subdir)
    return project_dir


def safe_filename(filename: str) -> str:
    """Normalize uploaded filename and drop any directory part"""
    return Path(filename.replace("\\", "/")).name


def is_safe_path_segment(name: str) -> bool:
    """True when name stays a single directory level below its parent"""
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name \
        and "\x00" not in name


def is_image_filename(filename: str) -> bool:
    return Path(filename).suffix.lower() in IMAGE_EXTENSIONS


def build_stored_filename(original_name: str) -> str:
    """Timestamp plus a random suffix in front of the original basename"""
    return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}-{safe_filename(original_name)}"


def get_labeled_filename(file_name: str) -> str:
    """Build the deterministic composite filename for a stored image"""
    return f"{Path(file_name).stem}_labeled.png"


def get_labeled_path(product_number: str, file_name: str) -> Path:
    return get_labeled_images_dir(product_number) / get_labeled_filename(file_name)


def ensure_dir(path: Path) -> Path:
    """Ensure directory exists"""
    path.mkdir(parents=True, exist_ok=True)
    return path
