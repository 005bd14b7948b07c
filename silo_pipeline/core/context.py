import contextvars

_silo_id: contextvars.ContextVar[str] = contextvars.ContextVar("silo_id", default="-")
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_actor_id: contextvars.ContextVar[str] = contextvars.ContextVar("actor_id", default="-")


def set_silo_id(silo_id: str) -> None:
    _silo_id.set(silo_id)


def get_silo_id() -> str:
    return _silo_id.get()


def set_request_id(request_id: str) -> None:
    _request_id.set(request_id)


def get_request_id() -> str:
    return _request_id.get()


def set_actor_id(actor_id: str) -> None:
    _actor_id.set(actor_id)


def get_actor_id() -> str:
    return _actor_id.get()


def clear_context() -> None:
    _silo_id.set("-")
    _request_id.set("-")
    _actor_id.set("-")
