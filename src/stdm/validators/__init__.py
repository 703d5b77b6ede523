from .sources_validator import validate_sources, check_residual_data

__all__ = ["validate_sources", "check_residual_data"]
