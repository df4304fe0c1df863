# Importing the adapter modules registers them with AdapterRegistry
from .apple_health import AppleHealthAdapter  # noqa: F401
