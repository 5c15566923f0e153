"""
Exceptions for zpass
Everything raised on purpose derives from ZPassError so callers have one place to catch
"""


class ZPassError(Exception):
    # general container for errors
    pass


class DecryptError(ZPassError):
    # raised when a sealed secret cannot be recovered
    pass


class AuthenticationFailedError(DecryptError):
    # raised on a wrong passphrase or tampered ciphertext
    pass


class KdfError(ZPassError):
    # raised when argon2 cannot run with the requested work factors
    pass


class FormatError(ZPassError):
    # raised when vault bytes do not parse
    pass


class UnsupportedVersionError(FormatError):
    # raised for unknown or future vault format versions
    pass


class MalformedVaultError(FormatError):
    # raised for any other structural problem in a vault document
    pass


class ConfigError(ZPassError):
    # raised when configuration cannot be satisfied
    pass


class InvalidPolicyError(ConfigError):
    # raised when a password policy is impossible (zero length, empty charset...)
    pass


class WeakPassphraseError(ConfigError):
    # raised when a new passphrase is shorter than allowed
    pass


class PassphraseMismatchError(ConfigError):
    # raised when the passphrase confirmation differs
    pass


class InvalidSettingError(ConfigError):
    # raised when an environment setting has a bad value
    pass


class SessionLockedError(ZPassError):
    # raised when a locked or expired session is used
    pass


class StoreError(ZPassError):
    # raised if the vault store fails in some way
    pass


class VaultNotFoundError(StoreError):
    # raised when a named (or default) vault DNE
    pass


class VaultExistsError(StoreError):
    # raised when adding a vault under a taken name
    pass


class InvalidVaultNameError(StoreError):
    # raised when a vault name is not safe to use as a directory name
    pass


class PreferenceError(ZPassError):
    # general container for preference errors
    pass


class PreferenceExistsError(PreferenceError):
    # raised when adding a duplicate (domain, username)
    pass


class PreferenceNotFoundError(PreferenceError):
    # raised when no preference matches
    pass
