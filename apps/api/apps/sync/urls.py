"""
Sync API URLs.
"""
from django.urls import path

from .views import SyncPullView, SyncPushView, SyncRestoreView, SyncStatusView

urlpatterns = [
    path('push/', SyncPushView.as_view(), name='sync-push'),
    path('pull/', SyncPullView.as_view(), name='sync-pull'),
    path('restore/', SyncRestoreView.as_view(), name='sync-restore'),
    path('status/', SyncStatusView.as_view(), name='sync-status'),
]
