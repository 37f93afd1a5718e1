from __future__ import annotations

import re

# Build-host workspace recorded by legacy streams; replaced by the configured source path.
LEGACY_PATH_PATTERN = re.compile(
    r"/u/covdev/ccm_wa/symbios/RAIDCore-cdTrunk/dev_e10_820_\w{4}-68.20.99.99+"
)


def rewrite_path(
    remote_path: str,
    *,
    strip_prefix: str | None = None,
    source_path: str | None = None,
) -> str:
    """Turn the path recorded by the analysis into a path relative to the local checkout.

    The strip prefix is applied first, then the legacy substitution runs on
    the result.
    """
    path = remote_path
    if strip_prefix and path.startswith(strip_prefix):
        path = "./" + path[len(strip_prefix) :]
    if source_path is not None:
        path = LEGACY_PATH_PATTERN.sub(lambda _match: source_path, path)
    return path
