from django.urls import include, path

urlpatterns = [
    path('api/contract-rates/', include('contract_rates.urls')),
]
