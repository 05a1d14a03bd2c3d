"""Static page served in place of a suspended tenant's entry point.

Blocking helpers, called through ``asyncio.to_thread``.
"""

import html
from pathlib import Path

from tenantforge.core.constants import ENTRY_POINT_NAME


PLACEHOLDER_MARKER = "<!-- tenantforge:suspended -->"
SAVED_SUFFIX = ".suspended"

PLACEHOLDER_TEMPLATE = """\
<!DOCTYPE html>
{marker}
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="robots" content="noindex">
<title>{title} is unavailable</title>
</head>
<body>
<h1>{title} is temporarily unavailable</h1>
<p>{reason}</p>
<p>If you own this site, sign in to your account to restore it.</p>
</body>
</html>
"""


def entry_point(root: Path) -> Path:
    return Path(root) / "content" / ENTRY_POINT_NAME


def render_placeholder(title: str, reason: str) -> str:
    return PLACEHOLDER_TEMPLATE.format(
        marker=PLACEHOLDER_MARKER,
        title=html.escape(title),
        reason=html.escape(reason),
    )


def install_placeholder(root: Path, title: str, reason: str) -> Path:
    """Write the placeholder over the entry point.

    The current entry point is kept next to it with a ``.suspended``
    suffix. An existing saved copy is never overwritten, so suspending
    twice cannot lose the original page.
    """
    target = entry_point(root)
    saved = target.with_name(target.name + SAVED_SUFFIX)
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists() and not saved.exists() and not is_placeholder(target):
        target.rename(saved)
    target.write_text(render_placeholder(title, reason), encoding="utf-8")
    return target


def restore_entry_point(root: Path) -> bool:
    """Put the saved entry point back.

    Returns:
        True if a saved entry point was restored
    """
    target = entry_point(root)
    saved = target.with_name(target.name + SAVED_SUFFIX)
    if saved.exists():
        saved.replace(target)
        return True
    if target.exists() and is_placeholder(target):
        target.unlink()
    return False


def is_placeholder(path: Path) -> bool:
    try:
        with Path(path).open("r", encoding="utf-8", errors="replace") as handle:
            head = handle.read(256)
    except FileNotFoundError:
        return False
    return PLACEHOLDER_MARKER in head
