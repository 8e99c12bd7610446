from django.apps import AppConfig


class ContractRatesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "contract_rates"
    verbose_name = "Contract rate instantiation"
