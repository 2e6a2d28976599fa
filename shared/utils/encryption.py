import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from shared.config import shared_settings


class EncryptionUtility:
    def __init__(self, key: str | None = None):
        # Hash the encryption key to ensure it is exactly 32 bytes long
        hashed_key = hashlib.sha256((key or shared_settings.ENCRYPTION_KEY).encode()).digest()
        self.fernet = Fernet(base64.urlsafe_b64encode(hashed_key))

    def encrypt(self, data: str) -> str:
        """
        Encrypt the provided data (a refresh token in this service).
        """
        data = str(data)
        encrypted_data = self.fernet.encrypt(data.encode())
        return encrypted_data.decode()

    def decrypt(self, encrypted_data: str) -> str | None:
        """
        Decrypt the provided encrypted data. Returns None when the value was not
        produced with the current key.
        """
        try:
            decrypted_data = self.fernet.decrypt(encrypted_data.encode())
        except InvalidToken:
            return None
        return decrypted_data.decode()
