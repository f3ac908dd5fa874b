"""Input validation — checks category ids before a category run starts."""


def validate_category(category_id: str) -> str:
    """Validate that the category id is a non-empty string.

    Returns the stripped, lowercased id on success.
    Raises ValueError if input is empty or whitespace-only.
    """
    if not isinstance(category_id, str) or not category_id.strip():
        raise ValueError("Category id must be a non-empty string.")
    return category_id.strip().lower()
