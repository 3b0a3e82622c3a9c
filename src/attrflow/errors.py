"""Configuration errors raised synchronously by registration and atomic blocks.

None of these are raised after the dependency graph has been touched: a failed
registration can be retried cleanly.
"""


class ConfigurationError(Exception):
    """Base class for mistakes in how computed attributes are declared or used."""


class SelfDependencyError(ConfigurationError):
    """A computed attribute declared a binding on its own name on its own store."""


class DependencyCycleError(ConfigurationError):
    """Registering a binding would make a computed attribute depend on itself transitively."""


class BindingError(ConfigurationError):
    """A binding was given in a shape that cannot be resolved."""


class AtomicNestingError(ConfigurationError):
    """An atomic block was entered while another one is still active."""
