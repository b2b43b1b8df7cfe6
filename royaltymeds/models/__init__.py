from royaltymeds.models.user import User
from royaltymeds.models.prescription import Prescription, PrescriptionItem, PrescriptionFill
from royaltymeds.models.refill import RefillRequest
from royaltymeds.models.drug import Drug, InventoryTransaction
from royaltymeds.models.order import Order, OrderItem, CartItem
from royaltymeds.models.payment import PaymentConfig, ShippingRate
from royaltymeds.models.audit import AuditLog
