from .client_manager import PROVIDERS, AIClientManager, ProviderSettings, resolve_provider

__all__ = ["AIClientManager", "ProviderSettings", "PROVIDERS", "resolve_provider"]
