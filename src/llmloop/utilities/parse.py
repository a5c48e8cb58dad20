import logging

logger = logging.getLogger(__name__)

FENCE = "```"


def trim(text: str, chars: str = " \t\n") -> str:
    """Strip the given characters from both ends of the text."""
    return text.strip(chars)


def strip_code_fence(text: str, lang: str = "json") -> str:
    """Remove a leading ``` fence (with optional language tag), a trailing fence, and surrounding whitespace."""
    if text.startswith(FENCE + lang):
        text = text[len(FENCE + lang) :]
    if text.startswith(FENCE):
        text = text[len(FENCE) :]
    if text.endswith(FENCE):
        text = text[: -len(FENCE)]
    return trim(text, " \n\r\t")


def extract_json(text: str) -> str:
    """Identify json from a text blob by matching '[]' or '{}'.

    Warning: This will identify the first json structure!
    """
    # check for markdown indicator; if present, start there
    md_json_idx = text.find("```json")
    if md_json_idx != -1:
        text = text[md_json_idx:]

    # search for json delimiter pairs
    left_bracket_idx = text.find("[")
    left_brace_idx = text.find("{")

    indices = [idx for idx in (left_bracket_idx, left_brace_idx) if idx != -1]
    start_idx = min(indices) if indices else None

    # If no delimiter found, return the original text
    if start_idx is None:
        return text

    # Identify the exterior delimiters defining JSON
    open_char = text[start_idx]
    close_char = "]" if open_char == "[" else "}"

    # Initialize a count to keep track of delimiter pairs
    count = 0
    for i, char in enumerate(text[start_idx:], start=start_idx):
        if char == open_char:
            count += 1
        elif char == close_char:
            count -= 1

        # When count returns to zero, we've found a complete structure
        if count == 0:
            return text[start_idx : i + 1]

    return text  # In case of unbalanced JSON, return the original text
