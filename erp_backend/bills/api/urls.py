# bills/api/urls.py

from django.urls import path

from bills.api.views import (
    BillDetailView,
    BillListCreateView,
    BillPaymentListCreateView,
    VendorListCreateView,
)

urlpatterns = [
    path("", BillListCreateView.as_view(), name="bills"),
    path("vendors/", VendorListCreateView.as_view(), name="bill-vendors"),
    path("<uuid:bill_id>/", BillDetailView.as_view(), name="bill-detail"),
    path(
        "<uuid:bill_id>/payments/",
        BillPaymentListCreateView.as_view(),
        name="bill-payments",
    ),
]
