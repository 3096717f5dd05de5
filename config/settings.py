"""Runtime configuration read from the environment and SSM Parameter Store."""
import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from processor.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CHAINS = 'cineworld,picturehouse'


class SecretResolver:
    """
    Resolves secrets given directly or as SSM parameter names.

    ``NAME`` in the environment wins; otherwise ``NAME_PARAMETER`` names an
    SSM parameter fetched with decryption.
    """

    def __init__(self, environ: Mapping[str, str], ssm_client: Any = None):
        self.environ = environ
        self._ssm = ssm_client

    @property
    def ssm(self):
        if self._ssm is None:
            self._ssm = boto3.client('ssm')
        return self._ssm

    def get(self, name: str, required: bool = False) -> Optional[str]:
        """
        Resolve one secret.

        Args:
            name: Environment variable name
            required: Raise if the secret is not configured

        Returns:
            Secret value, or None if not configured

        Raises:
            ConfigurationError: If a required secret is missing or its
                parameter cannot be read
        """
        value = self.environ.get(name)
        if value:
            return value

        parameter = self.environ.get(f"{name}_PARAMETER")
        if parameter:
            try:
                response = self.ssm.get_parameter(Name=parameter, WithDecryption=True)
            except (BotoCoreError, ClientError) as e:
                raise ConfigurationError(
                    f"Could not read SSM parameter {parameter} for {name}: {e}"
                ) from e
            logger.info(f"Loaded {name} from SSM parameter {parameter}")
            return response['Parameter']['Value']

        if required:
            raise ConfigurationError(f"Missing required setting {name} (or {name}_PARAMETER)")
        return None


@dataclass
class Settings:
    """Configuration of one sync run."""
    calendar_id: str
    google_client_id: str
    google_client_secret: str
    google_refresh_token: str
    calendar_timezone: str = 'Europe/London'
    chains: Tuple[str, ...] = ('cineworld', 'picturehouse')
    tmdb_api_key: Optional[str] = None
    google_maps_api_key: Optional[str] = None
    log_level: str = 'INFO'
    timeout_seconds: int = 30
    dry_run: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, ssm_client: Any = None) -> 'Settings':
        """
        Read settings from environment variables.

        Args:
            environ: Mapping to read (default: os.environ)
            ssm_client: Optional boto3 SSM client for secret parameters

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If required settings are missing or invalid
        """
        environ = os.environ if environ is None else environ
        secrets = SecretResolver(environ, ssm_client)

        calendar_id = environ.get('CALENDAR_ID')
        if not calendar_id:
            raise ConfigurationError("Missing required setting CALENDAR_ID")

        try:
            timeout_seconds = int(environ.get('TIMEOUT_SECONDS', '30'))
        except ValueError as e:
            raise ConfigurationError(f"TIMEOUT_SECONDS must be an integer: {e}") from e

        chains = tuple(
            chain.strip().lower()
            for chain in environ.get('CINEMA_CHAINS', DEFAULT_CHAINS).split(',')
            if chain.strip()
        )

        return cls(
            calendar_id=calendar_id,
            google_client_id=secrets.get('GOOGLE_CLIENT_ID', required=True),
            google_client_secret=secrets.get('GOOGLE_CLIENT_SECRET', required=True),
            google_refresh_token=secrets.get('GOOGLE_REFRESH_TOKEN', required=True),
            calendar_timezone=environ.get('CALENDAR_TIMEZONE', 'Europe/London'),
            chains=chains,
            tmdb_api_key=secrets.get('TMDB_API_KEY'),
            google_maps_api_key=secrets.get('GOOGLE_MAPS_API_KEY'),
            log_level=environ.get('LOG_LEVEL', 'INFO'),
            timeout_seconds=timeout_seconds,
            dry_run=environ.get('DRY_RUN', 'false').strip().lower() in ('1', 'true', 'yes')
        )
