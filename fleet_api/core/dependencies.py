# fleet_api/core/dependencies.py
# Dependency injection for FastAPI routes
# Provides singleton instances of system components

import logging
from typing import Dict, Optional
from fastapi import Header, HTTPException

logger = logging.getLogger(__name__)


class SystemComponents:
    """
    Container for system components with singleton pattern
    Manages initialization and lifecycle of the store, clock and extraction agent
    """

    _instance: Optional['SystemComponents'] = None
    _components: Optional[Dict] = None
    _initialized: bool = False

    def __new__(cls):
        """Singleton pattern - only one instance exists"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def initialize(self, **overrides):
        """
        Initialize all system components
        This is called once during application startup

        Args:
            **overrides: Ready-made components ('store', 'clock', 'agent',
                'config') used instead of building them from configuration
        """
        if self._initialized:
            logger.info("⚠️  System components already initialized, skipping...")
            return

        try:
            logger.info("🔧 Initializing system components...")

            from compliance_engine.clock import get_clock
            from compliance_engine.config import get_config

            config = overrides.get("config") or get_config()

            # Store
            store = overrides.get("store")
            if store is None:
                logger.info(f"  🗄️  Initializing {config.STORE_BACKEND} fleet store...")
                store = build_store(config)

            # Clock
            clock = overrides.get("clock") or get_clock()

            # Extraction agent
            agent = overrides.get("agent")
            if agent is None:
                logger.info(f"  🤖 Initializing {config.EXTRACTION_PROVIDER} extraction agent...")
                from fleet_api.modules.document_inbox.services.extraction_agent import get_extraction_agent
                agent = get_extraction_agent(config)

            self._components = {
                "store": store,
                "clock": clock,
                "agent": agent,
                "config": config,
            }
            self._initialized = True

            logger.info("✅ System components initialized successfully")
            logger.info(f"   📊 Components loaded: {list(self._components.keys())}")

        except Exception as e:
            logger.error(f"❌ Failed to initialize system components: {e}", exc_info=True)
            self._components = None
            self._initialized = False
            raise RuntimeError(f"System initialization failed: {e}") from e

    def get_components(self) -> Dict:
        """
        Get initialized components dictionary

        Returns:
            dict: Dictionary of initialized components

        Raises:
            RuntimeError: If components are not initialized
        """
        if self._components is None:
            logger.error("❌ Components not initialized!")
            raise RuntimeError(
                "System components are not initialized. "
                "This should not happen - check application startup."
            )

        return self._components

    def is_initialized(self) -> bool:
        """Check if components are initialized"""
        return self._initialized and self._components is not None

    def get_component(self, name: str):
        """
        Get a specific component by name

        Args:
            name: Component name ('store', 'clock', 'agent', 'config')

        Returns:
            Component instance

        Raises:
            KeyError: If component not found
            RuntimeError: If components not initialized
        """
        components = self.get_components()

        if name not in components:
            available = list(components.keys())
            raise KeyError(
                f"Component '{name}' not found. "
                f"Available components: {available}"
            )

        return components[name]

    def reset(self):
        """
        Reset components (useful for testing)
        WARNING: This will force re-initialization on next access
        """
        logger.warning("⚠️  Resetting system components...")
        self._components = None
        self._initialized = False
        logger.info("✅ Components reset complete")


def build_store(config):
    """Create the fleet store selected by STORE_BACKEND"""
    if config.STORE_BACKEND == "postgres":
        from fleet_api.modules.vehicles.services.postgres_store import PostgresFleetStore
        store = PostgresFleetStore(config.CONNECTION_STRING)
        store.ensure_schema()
        return store

    from fleet_api.modules.vehicles.services.fleet_store import InMemoryFleetStore
    return InMemoryFleetStore()


# Global singleton instance
_system_components = SystemComponents()


def get_system_components() -> SystemComponents:
    """
    Get system components

    Raises:
        HTTPException: If components are not initialized
    """
    if not _system_components.is_initialized():
        logger.error("❌ System components not initialized in dependency!")
        raise HTTPException(
            status_code=503,
            detail="System components are not initialized. Service unavailable."
        )

    return _system_components


def initialize_system_components(**overrides):
    """
    Initialize system components at application startup

    This should be called in the FastAPI lifespan event
    """
    try:
        _system_components.initialize(**overrides)
    except Exception as e:
        logger.error(f"❌ Failed to initialize system components: {e}")
        raise


def get_store():
    """Get fleet store component"""
    return get_system_components().get_component("store")


def get_extraction_agent():
    """Get extraction agent component"""
    return get_system_components().get_component("agent")


def get_actor_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> Optional[str]:
    """
    Acting user for audit entries

    Usage:
        @router.post("")
        async def create(actor_id: Optional[str] = Depends(get_actor_id)):
            ...
    """
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return None


# Health check helper
async def check_system_health() -> Dict:
    """
    Check health of all system components

    Returns:
        dict: Health status of each component
    """
    try:
        components = _system_components.get_components()

        health_status = {
            "overall": "healthy",
            "components": {}
        }

        for name, component in components.items():
            if name == "config":
                health_status["components"][name] = {
                    "status": "operational",
                    "type": "configuration"
                }
            elif hasattr(component, 'get_status'):
                details = component.get_status()
                component_status = "operational"
                if details.get('database') == 'unavailable' or details.get('configured') is False:
                    component_status = "degraded"
                    health_status["overall"] = "degraded"
                health_status["components"][name] = {
                    "status": component_status,
                    "details": details
                }
            else:
                health_status["components"][name] = {
                    "status": "operational",
                    "type": type(component).__name__
                }

        return health_status

    except RuntimeError as e:
        logger.error(f"Health check failed: {e}")
        return {
            "overall": "unhealthy",
            "error": str(e),
            "components": {}
        }
