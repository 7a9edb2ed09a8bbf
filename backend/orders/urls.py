from django.urls import path
from .views import (
    cart_detail, cart_line_remove, checkout,
    order_list, order_detail, order_update_status, order_stats,
    track_order,
)

urlpatterns = [
    # Buyer
    path('catalog/<slug:slug>/cart/', cart_detail, name='cart-detail'),
    path('catalog/<slug:slug>/cart/<int:variant_id>/', cart_line_remove, name='cart-line-remove'),
    path('catalog/<slug:slug>/checkout/', checkout, name='checkout'),
    path('track/<str:order_number>/', track_order, name='track-order'),

    # Seller
    path('shops/<slug:slug>/orders/', order_list, name='order-list'),
    path('shops/<slug:slug>/orders/stats/', order_stats, name='order-stats'),
    path('shops/<slug:slug>/orders/<int:pk>/', order_detail, name='order-detail'),
    path('shops/<slug:slug>/orders/<int:pk>/status/', order_update_status, name='order-update-status'),
]
