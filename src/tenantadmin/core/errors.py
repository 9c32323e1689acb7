class PlatformNotSupported(RuntimeError):
    """Raised when a Windows-only API (winreg, COM, version resources) is unavailable."""
