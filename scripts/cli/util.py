"""CLI utilities: logging mute/restore, cell formatting."""

import logging


def enable_quiet_logging():
    """Mute console handlers so CLI output stays clean. Returns list to pass to restore_logging."""
    wk_logger = logging.getLogger("workflow_kernel")
    muted = []
    for h in wk_logger.handlers:
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
            muted.append((h, h.level))
            h.setLevel(logging.CRITICAL + 1)
    return muted


def restore_logging(muted):
    """Restore muted handlers after a quiet-logging section."""
    for h, orig_level in muted:
        h.setLevel(orig_level)


def clip(value, width: int) -> str:
    """Render a cell, truncated to ``width`` characters."""
    text = "" if value is None else str(value)
    return text if len(text) <= width else text[: width - 1] + "~"
