"""Logging setup and terminal-safe text for the CLI.

Detects whether the terminal can print Unicode and provides ASCII
alternatives for the few icons the report uses, so output does not crash on
legacy Windows consoles.
"""
import locale
import logging
import sys

# Unicode to ASCII icon mapping for non-UTF-8 terminals
ICON_MAP = {
    '⚠': '[WARN]',
    '→': '->',
}

LOG_FORMAT = '%(levelname)s %(name)s: %(message)s'


def detect_terminal_encoding() -> str:
    """Detect the terminal's encoding ('utf-8', 'cp1252', 'ascii', ...)."""
    if getattr(sys.stdout, 'encoding', None):
        return sys.stdout.encoding.lower()
    try:
        return locale.getpreferredencoding().lower()
    except (ValueError, LookupError):
        return 'ascii'


def is_utf8_capable() -> bool:
    return detect_terminal_encoding().replace('-', '').replace('_', '') == 'utf8'


def sanitize_for_terminal(text: str) -> str:
    """Replace Unicode icons with ASCII equivalents if the terminal can't print them."""
    if is_utf8_capable():
        return text
    for unicode_char, ascii_replacement in ICON_MAP.items():
        text = text.replace(unicode_char, ascii_replacement)
    return text


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route library log records to stderr.

    Args:
        verbose: Show debug records
        quiet: Only show errors
    """
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
