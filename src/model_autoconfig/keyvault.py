"""Azure Key Vault lookup for provider credentials."""

from __future__ import annotations

from typing import Optional

from azure.identity import DefaultAzureCredential  # type: ignore
from azure.keyvault.secrets import SecretClient  # type: ignore
from loguru import logger  # type: ignore


def fetch_secret(vault_url: Optional[str], secret_name: str) -> Optional[str]:
    """Return the secret value, or None when no vault is configured or the fetch fails."""
    if not vault_url:
        return None
    try:  # pragma: no cover (network)
        credential = DefaultAzureCredential()
        client = SecretClient(vault_url=vault_url, credential=credential)
        secret = client.get_secret(secret_name)
        logger.info(f"Retrieved secret '{secret_name}' from Key Vault.")
        return secret.value
    except Exception as e:
        logger.warning(f"Failed to fetch secret '{secret_name}' from Key Vault: {e}")
        return None
