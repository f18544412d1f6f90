"""
Script text sanitizer and length validator.

Generated scripts may carry markdown emphasis, links and emoji that a
speech engine would read aloud. Bracketed emotion tags such as [happy]
are voice directions and are kept.
"""
import re

from survey_audio.core.exceptions import InvalidScriptLength


_MARKDOWN_LINK = re.compile(r'\[([^\]]*)\]\([^)]*\)')
_BOLD = re.compile(r'\*\*(.*?)\*\*')
_ITALIC = re.compile(r'\*(.*?)\*')
_UNDERLINE = re.compile(r'__(.*?)__')
_STRIKETHROUGH = re.compile(r'~~(.*?)~~')
_URL = re.compile(r'https?://[^\s)]+')
_EMOJI = re.compile(
    '['
    '\U0001F600-\U0001F64F'  # emoticons
    '\U0001F300-\U0001F5FF'  # symbols & pictographs
    '\U0001F680-\U0001F6FF'  # transport & map
    '\U0001F900-\U0001F9FF'  # supplemental symbols
    '\U0001FA70-\U0001FAFF'  # symbols & pictographs extended-A
    '\U0001F1E6-\U0001F1FF'  # regional indicators (flags)
    '\U0001F000-\U0001F02F'  # mahjong tiles
    '\U0001F0A0-\U0001F0FF'  # playing cards
    '\u2600-\u26FF'          # misc symbols
    '\u2700-\u27BF'          # dingbats
    '\u2B00-\u2BFF'          # misc symbols & arrows
    '\uFE0F\u200D'           # variation selector, zero width joiner
    ']+'
)
_WHITESPACE = re.compile(r'\s+')


def sanitize_script(text: str) -> str:
    """
    Strip markup, URLs and emoji and collapse whitespace.

    Deterministic and word-preserving: emphasis markers and link syntax are
    removed but their inner text stays.

    Example:
        sanitize_script("**Hello** [world](http://x.com) 😀") == "Hello world"
    """
    if not text:
        return ""

    cleaned = _MARKDOWN_LINK.sub(r'\1', text)
    cleaned = _BOLD.sub(r'\1', cleaned)
    cleaned = _ITALIC.sub(r'\1', cleaned)
    cleaned = _UNDERLINE.sub(r'\1', cleaned)
    cleaned = _STRIKETHROUGH.sub(r'\1', cleaned)
    cleaned = _URL.sub('', cleaned)
    cleaned = _EMOJI.sub('', cleaned)
    return _WHITESPACE.sub(' ', cleaned).strip()


def validate_script_length(text: str, min_chars: int, max_chars: int) -> str:
    """
    Enforce the synthesis length window.

    Raises:
        InvalidScriptLength: Below min_chars (not a meaningful message) or
            above max_chars (provider request size limit)
    """
    length = len(text)
    if length < min_chars:
        raise InvalidScriptLength(
            f"Script too short: {length} characters (minimum {min_chars})",
            error_code="SCRIPT_TOO_SHORT",
            details={"length": length, "min_chars": min_chars}
        )
    if length > max_chars:
        raise InvalidScriptLength(
            f"Script too long: {length} characters (maximum {max_chars})",
            error_code="SCRIPT_TOO_LONG",
            details={"length": length, "max_chars": max_chars}
        )
    return text
