"""Registry of Action Network API tokens keyed by feed identifier."""
import logging
import os
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

API_KEY_PREFIX = 'ACTION_NETWORK_API_KEY_'


class CredentialRegistry:
    """
    Read-only mapping of feed identifier to API token.

    Built once at startup and passed to the components that need lookups.
    """

    def __init__(self, tokens: Mapping[str, str]):
        self._tokens = MappingProxyType(dict(tokens))

    @classmethod
    def from_environ(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        prefix: str = API_KEY_PREFIX
    ) -> 'CredentialRegistry':
        """
        Build the registry from configuration entries carrying the key prefix.

        ``ACTION_NETWORK_API_KEY_TEAM_A=secret`` registers feed ``TEAM_A``.
        Entries with an empty identifier or an empty token are skipped.

        Args:
            environ: Mapping to read from (default: os.environ)
            prefix: Entry name prefix identifying API keys

        Returns:
            CredentialRegistry instance
        """
        environ = os.environ if environ is None else environ
        tokens: Dict[str, str] = {}

        for name, value in environ.items():
            if not name.startswith(prefix):
                continue
            feed_id = name[len(prefix):]
            if not feed_id or not value:
                logger.warning(f"Ignoring incomplete API key entry: {name}")
                continue
            tokens[feed_id] = value

        logger.info(f"Loaded API keys for {len(tokens)} feed(s)")
        return cls(tokens)

    def lookup(self, feed_id: str) -> Optional[str]:
        """Return the token for a feed, or None if it is not configured."""
        return self._tokens.get(feed_id)

    def list_ids(self) -> List[str]:
        """Return configured feed identifiers in sorted order."""
        return sorted(self._tokens)

    def __contains__(self, feed_id: object) -> bool:
        return feed_id in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)


def format_directory(registry: CredentialRegistry) -> str:
    """Render the configured feed identifiers, one per line."""
    return '\n'.join(registry.list_ids())
