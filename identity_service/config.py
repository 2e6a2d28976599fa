from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from identity_service.enums import AuthProvider
from shared.config import load_env_variables, shared_settings

version = load_env_variables('identity')


class JwtConfig(BaseModel):
    secret: str
    algorithm: str = 'HS256'
    access_expiration_minutes: int
    refresh_expiration_days: int
    reset_password_expiration_minutes: int
    verify_email_expiration_minutes: int


class OAuthClientConfig(BaseModel):
    client_id: str
    client_secret: str
    redirect_url: str = ''

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra='ignore'
    )

    APP_STATUS: str = 'running'
    APP_VERSION: str = version

    DATABASE_URL: str
    POOL_SIZE: str = '10'
    MAX_OVERFLOW: str = '20'
    POOL_TIMEOUT: str = '30'
    POOL_RECYCLE: str = '300'
    DB_AUTO_CREATE: bool = True

    # Auth
    JWT_SECRET: str
    JWT_ACCESS_EXPIRATION_MINUTES: int = 30
    JWT_REFRESH_EXPIRATION_DAYS: int = 30
    JWT_RESET_PASSWORD_EXPIRATION_MINUTES: int = 10
    JWT_VERIFY_EMAIL_EXPIRATION_MINUTES: int = 10
    FRONTEND_URL: str = 'http://localhost:3000'

    RATE_LIMIT: str = '10/15minutes'
    RATE_LIMIT_ENABLED: bool = True
    TOKEN_CLEANUP_INTERVAL_HOURS: int = 24

    # AuthProviders
    GITHUB_CLIENT_ID: str = ''
    GITHUB_CLIENT_SECRET: str = ''
    GITHUB_REDIRECT_URL: str = ''
    GOOGLE_CLIENT_ID: str = ''
    GOOGLE_CLIENT_SECRET: str = ''
    GOOGLE_REDIRECT_URL: str = ''
    DISCORD_CLIENT_ID: str = ''
    DISCORD_CLIENT_SECRET: str = ''
    DISCORD_REDIRECT_URL: str = ''
    SPOTIFY_CLIENT_ID: str = ''
    SPOTIFY_CLIENT_SECRET: str = ''
    SPOTIFY_REDIRECT_URL: str = ''
    FACEBOOK_CLIENT_ID: str = ''
    FACEBOOK_CLIENT_SECRET: str = ''
    FACEBOOK_REDIRECT_URL: str = ''

    @property
    def jwt_config(self) -> JwtConfig:
        return JwtConfig(
            secret=self.JWT_SECRET,
            algorithm=shared_settings.JWT_ALGORITHM,
            access_expiration_minutes=self.JWT_ACCESS_EXPIRATION_MINUTES,
            refresh_expiration_days=self.JWT_REFRESH_EXPIRATION_DAYS,
            reset_password_expiration_minutes=self.JWT_RESET_PASSWORD_EXPIRATION_MINUTES,
            verify_email_expiration_minutes=self.JWT_VERIFY_EMAIL_EXPIRATION_MINUTES,
        )

    def oauth_client(self, provider: AuthProvider) -> OAuthClientConfig:
        prefix = provider.value.upper()
        return OAuthClientConfig(
            client_id=getattr(self, f'{prefix}_CLIENT_ID'),
            client_secret=getattr(self, f'{prefix}_CLIENT_SECRET'),
            redirect_url=getattr(self, f'{prefix}_REDIRECT_URL'),
        )


settings = Settings()


def get_settings() -> Settings:
    return settings
