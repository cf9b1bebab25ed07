# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views.accounts import ActiveChartAccountsView
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.trial_balance import TrialBalanceView

router = DefaultRouter()
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")

urlpatterns = [
    path("", include(router.urls)),
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("accounts/", ActiveChartAccountsView.as_view(), name="accounts"),
]
