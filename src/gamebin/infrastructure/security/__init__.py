from gamebin.infrastructure.security.encryption import FieldEncryptor

__all__ = ["FieldEncryptor"]
