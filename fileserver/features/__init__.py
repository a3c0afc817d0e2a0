from .security import contain_path, validate_path

__all__ = ["contain_path", "validate_path"]
