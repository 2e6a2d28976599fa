import os

import pathlib
from typing import List, Union

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def load_env_variables(service_name: str) -> str | None:
    # check if KUBERNETES_PORT env var exists
    service_dir = str(
        pathlib.Path(__file__).resolve().parent.parent
    ) + f"/{service_name if service_name == 'shared' else service_name + '_service'}"
    if 'KUBERNETES_PORT' not in os.environ:
        load_dotenv(os.path.join(service_dir, '.env'))
    if service_name != 'shared':
        version_file = os.path.join(service_dir, 'version')
        if not os.path.isfile(version_file):
            raise FileNotFoundError(f'No version file found at {version_file}')
        with open(version_file, 'r') as file:
            version = file.read().strip()

        if not version:
            raise ValueError('No version provided in version')

        return version


load_env_variables('shared')


class SharedSettings(BaseSettings):
    model_config = SettingsConfigDict(
        extra='ignore'
    )

    ENVIRONMENT: str = 'development'  # Default value

    BACKEND_CORS_ORIGINS: Union[str, List[str]] = []  # comma separated in the environment

    ENCRYPTION_KEY: str

    JWT_ALGORITHM: str = 'HS256'

    # Email Service
    SMTP_SERVER: str = ''
    SMTP_PORT: str = '465'
    SMTP_EMAIL: str = ''
    SMTP_PASSWORD: str = ''

    APP_NAME: str = 'Identity Service'
    LOGO_URL: str = ''

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str], None]) -> List[str]:
        cors_origins = []
        if v:
            if isinstance(v, str):
                cors_origins.extend([i.strip() for i in v.split(",") if i.strip()])
            else:
                cors_origins.extend(v)

        return list(dict.fromkeys(cors_origins))


shared_settings = SharedSettings()
