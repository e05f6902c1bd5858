"""
Service container for the Aghosh donations service

Holds the payment gateway, idempotency ledger, reconciler and email provider
under fixed names so routes, tasks and CLI commands resolve the same objects
and tests can swap any of them after the app is created.
"""
from typing import Any, Callable, Dict, Optional, Type


class Container:
    """Name-keyed registry of services and service factories"""

    def __init__(self):
        self._factories: Dict[str, Callable[[], Any]] = {}
        self._shared: Dict[str, bool] = {}
        self._instances: Dict[str, Any] = {}
        self._types: Dict[str, Type] = {}

    def register(self, name: str, factory: Callable[[], Any], singleton: bool = True,
                 service_type: Optional[Type] = None):
        """
        Register a factory for ``name``

        Args:
            name: Service name (e.g. 'payment_reconciler')
            factory: Zero-argument callable building the service
            singleton: Build once and reuse; False builds a fresh instance per lookup
            service_type: Class every built instance must be an instance of
        """
        self._factories[name] = factory
        self._shared[name] = singleton
        self._instances.pop(name, None)
        self._set_type(name, service_type)

    def register_instance(self, name: str, instance: Any, service_type: Optional[Type] = None):
        """Register an already built service, replacing any factory of the same name"""
        self._set_type(name, service_type)
        self._check(name, instance)
        self._factories.pop(name, None)
        self._shared[name] = True
        self._instances[name] = instance

    def get(self, name: str) -> Any:
        if name in self._instances:
            return self._instances[name]
        if name not in self._factories:
            raise KeyError(f'Service "{name}" is not registered')

        instance = self._factories[name]()
        self._check(name, instance)
        if self._shared.get(name, True):
            self._instances[name] = instance
        return instance

    def has(self, name: str) -> bool:
        return name in self._instances or name in self._factories

    def _set_type(self, name, service_type):
        if service_type is not None:
            self._types[name] = service_type

    def _check(self, name, instance):
        expected = self._types.get(name)
        if expected is not None and not isinstance(instance, expected):
            raise TypeError(
                f'Service "{name}" must be a {expected.__name__}, got {type(instance).__name__}'
            )


_container = Container()


def get_container() -> Container:
    """Return the process-wide container"""
    return _container


def provide(name: str) -> Any:
    """Shortcut for ``get_container().get(name)``, e.g. ``provide('payment_gateway')``"""
    return _container.get(name)
