# Import SQLAlchemy models so they register on Base.metadata
from driver_api.models.driver import Driver, User, UserRole, Vehicle  # noqa: F401
from driver_api.models.epod_file import EpodFile, EpodStatus  # noqa: F401
from driver_api.models.order import Order, OrderStatus, PipelineStage  # noqa: F401
from driver_api.models.order_status_log import OrderStatusLog  # noqa: F401
