from app.models.restaurant import Restaurant  # noqa
from app.models.menu_item import MenuItem  # noqa
from app.models.order import Order  # noqa
from app.models.payment import Payment  # noqa
from app.models.payment_method import SavedPaymentMethod  # noqa
