"""Resource listers, one module per group of resource kinds.

Listers are discovered at runtime by the collector; every BaseResourceLister
subclass defined in this package is used.
"""
