"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (OCI REST API, HTTP, disk
cache, configuration files, console) by implementing the interfaces defined
in the domain layer.
"""
