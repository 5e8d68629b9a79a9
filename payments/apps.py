from django.apps import AppConfig
from django.conf import settings


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"

    def ready(self):
        from .gateway import RazorpayGateway

        # one gateway client per process; views read it from here
        self.gateway = RazorpayGateway.from_settings(settings)
