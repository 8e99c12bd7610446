from django.urls import path

from .views import RateCardBillingView, RatePreviewView

app_name = 'contract_rates'

urlpatterns = [
    path('preview', RatePreviewView.as_view(), name='rate-preview'),
    path('billing-items', RateCardBillingView.as_view(), name='rate-card-billing'),
]
