from .title_normalizer import extract_year_and_clean_title, normalize

__all__ = ["extract_year_and_clean_title", "normalize"]
