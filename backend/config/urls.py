"""
URL configuration for the TradeFeed backend.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.shops.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.orders.urls')),
    path('api/v1/', include('backend.promotions.urls')),
    path('api/v1/', include('backend.marketplace.urls')),
]
