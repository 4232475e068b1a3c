import enum


class NotificationType(str, enum.Enum):
    order = "order"
    alert = "alert"
    info = "info"
    ingredient = "ingredient"
    table = "table"


class Priority(str, enum.Enum):
    critical = "critical"
    medium = "medium"
    low = "low"


class ConnectionState(str, enum.Enum):
    disconnected = "disconnected"
    connecting = "connecting"
    open = "open"
    closing = "closing"


class StoreState(str, enum.Enum):
    uninitialized = "uninitialized"
    loading = "loading"
    ready = "ready"


class ToastType(str, enum.Enum):
    success = "success"
    error = "error"
    info = "info"
    warning = "warning"


class NotificationFilter(str, enum.Enum):
    all = "all"
    unread = "unread"
    critical = "critical"
    medium = "medium"
    low = "low"
