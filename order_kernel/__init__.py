"""
Order Kernel

Domain core of the service-order dashboard:
- Immutable order / product / workflow snapshots
- Declarative order lifecycle types
- Persisted document codec for the realtime store
- Structured logging and typed errors
"""

__version__ = "0.1.0"
