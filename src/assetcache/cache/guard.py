"""
Cache directory bootstrap and protection.

DirectoryGuard makes sure the cache root and its js/css zones exist and are
writable, drops a no-index marker into each zone and generates the access
policy file at the cache root when it is missing. Safe to call before every
cache operation.
"""

from __future__ import annotations

import os
from pathlib import Path

from assetcache.config import Settings
from assetcache.logging import get_logger
from assetcache.types import (
    ACCESS_POLICY_FILENAME,
    NOINDEX_FILENAME,
    ZONES,
    GzipMode,
    Zone,
)

logger = get_logger(__name__)

# Name of the user-supplied access policy template inside CONTENT_DIR
ACCESS_POLICY_OVERRIDE_FILENAME = "AO_htaccess_tmpl"

DIR_MODE = 0o775

NOINDEX_CONTENT = (
    '<html><head><meta name="robots" content="noindex, nofollow"></head>'
    "<body>Generated by assetcache</body></html>"
)

_POLICY_HEAD = """<IfModule mod_expires.c>
        ExpiresActive On
        ExpiresByType text/css A30672000
        ExpiresByType text/javascript A30672000
        ExpiresByType application/javascript A30672000
</IfModule>
<IfModule mod_headers.c>
    Header append Cache-Control "public, immutable"
</IfModule>
<IfModule mod_deflate.c>
    <FilesMatch "\\.(js|css)$">
        SetOutputFilter DEFLATE
    </FilesMatch>
</IfModule>
"""

# Containers may be executed
PERMISSIVE_ACCESS_POLICY = _POLICY_HEAD + """<IfModule mod_authz_core.c>
    <Files *.php>
        Require all granted
    </Files>
</IfModule>
<IfModule !mod_authz_core.c>
    <Files *.php>
        Order allow,deny
        Allow from all
    </Files>
</IfModule>"""

# Nothing in the cache may be executed
RESTRICTIVE_ACCESS_POLICY = _POLICY_HEAD + """<IfModule mod_authz_core.c>
    <Files *.php>
        Require all denied
    </Files>
</IfModule>
<IfModule !mod_authz_core.c>
    <Files *.php>
        Order deny,allow
        Deny from all
    </Files>
</IfModule>"""


class DirectoryGuard:
    """Ensures the cache directories are present, writable and protected."""

    def __init__(self, settings: Settings) -> None:
        """Initialize the guard.

        Args:
            settings: Cache settings. CACHE_DIR may be None, in which case
                the cache is never available.
        """
        self.settings = settings
        self.root: Path | None = settings.CACHE_DIR

    def zone_dir(self, zone: Zone) -> Path:
        """Get the directory for a zone."""
        if self.root is None:
            raise ValueError("No cache directory configured")
        return self.root / zone.value if zone.value else self.root

    @property
    def access_policy_path(self) -> Path | None:
        if self.root is None:
            return None
        return self.root / ACCESS_POLICY_FILENAME

    def ensure_available(self) -> bool:
        """Make sure the cache can be used.

        Returns:
            True when root, js and css directories exist and are writable.
            Failure to write the marker files does not affect the result.
        """
        if self.root is None:
            return False

        for zone in ZONES:
            if not self._check_dir(self.zone_dir(zone)):
                return False

        policy_path = self.root / ACCESS_POLICY_FILENAME
        if not policy_path.is_file():
            try:
                policy_path.write_text(self.render_access_policy(), encoding="utf-8")
            except OSError as e:
                logger.warning(
                    "Could not write access policy", path=str(policy_path), error=str(e)
                )

        return True

    def render_access_policy(self) -> str:
        """Build access policy content.

        Priority: override template on disk, then the permissive default for
        multisite or server-delegated mode, where the .php containers must
        stay reachable, then the restrictive default.
        """
        if self.settings.CONTENT_DIR is not None:
            override = self.settings.CONTENT_DIR / ACCESS_POLICY_OVERRIDE_FILENAME
            if override.is_file():
                try:
                    return override.read_text(encoding="utf-8")
                except OSError as e:
                    logger.warning(
                        "Could not read access policy template",
                        path=str(override),
                        error=str(e),
                    )

        if self.settings.MULTISITE or self.settings.GZIP_MODE is GzipMode.SERVER_DELEGATED:
            return PERMISSIVE_ACCESS_POLICY
        return RESTRICTIVE_ACCESS_POLICY

    def _check_dir(self, directory: Path) -> bool:
        """Create directory if needed and verify it is writable."""
        if not directory.exists():
            try:
                directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            except OSError as e:
                logger.warning(
                    "Could not create cache directory", path=str(directory), error=str(e)
                )
            if not directory.exists():
                return False

        if not directory.is_dir() or not os.access(directory, os.W_OK):
            logger.warning("Cache directory is not writable", path=str(directory))
            return False

        marker = directory / NOINDEX_FILENAME
        if not marker.is_file():
            try:
                marker.write_text(NOINDEX_CONTENT, encoding="utf-8")
            except OSError as e:
                logger.debug("Could not write no-index marker", path=str(marker), error=str(e))

        return True
