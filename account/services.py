from core.exceptions import require_user
from .models import Customer


class CustomerService:

    @staticmethod
    def for_user(user) -> Customer:
        """Customer record of a signed-in user, created on first use."""
        require_user(user)
        customer, _ = Customer.objects.get_or_create(
            user=user,
            defaults={
                "name": user.full_name or user.email.split("@")[0],
                "email": user.email,
                "phone": user.phone_number,
                "signup_source": "online",
            },
        )
        return customer

    @staticmethod
    def find_for_user(user):
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        return Customer.objects.filter(user=user).first()
