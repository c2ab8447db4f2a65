"""
Pluggable note backend factory.

Creates the note store named by configuration. ``local`` is a SQLite file
in the store directory, ``remote`` is the hosted entity API. External
backends register via the ``sanctuary.backends`` entry point group.

External backend packages provide a factory function::

    def create_store(config: StoreConfig) -> NoteStoreProtocol:
        ...

and register it in their pyproject.toml::

    [project.entry-points."sanctuary.backends"]
    my-backend = "my_package.backend:create_store"
"""

from .config import StoreConfig
from .protocol import NoteStoreProtocol


def create_store(config: StoreConfig) -> NoteStoreProtocol:
    """
    Create the note store from configuration.

    For ``backend = "local"`` (default), opens ``notes.db`` in the store
    directory. For ``backend = "remote"``, connects to ``[remote] api_url``.
    Other values are loaded via the ``sanctuary.backends`` entry point group.
    """
    if config.backend == "local":
        from .document_store import NoteStore
        return NoteStore(config.db_path, owner=config.owner)
    if config.backend == "remote":
        if config.remote is None:
            raise ValueError("backend = 'remote' requires a [remote] section with api_url and api_key")
        from .remote import RemoteNoteStore
        return RemoteNoteStore(
            config.remote.api_url,
            config.remote.api_key,
            owner=config.owner,
        )
    return _load_backend(config.backend, config)


def _load_backend(name: str, config: StoreConfig) -> NoteStoreProtocol:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="sanctuary.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: local, remote, {', '.join(available)}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. Use 'local' or 'remote', "
        f"or install a package that registers a sanctuary.backends entry point."
    )
