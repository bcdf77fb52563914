from models.user import User
from models.meal_plan import MealPlan, Meal
from models.order import Order, OrderMeal, OrderEvent
from models.subscription import Subscription
from models.payment import Payment
from models.support_ticket import SupportTicket, TicketResponse

__all__ = [
    "User", "MealPlan", "Meal", "Order", "OrderMeal", "OrderEvent",
    "Subscription", "Payment", "SupportTicket", "TicketResponse",
]
