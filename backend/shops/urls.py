from django.urls import path
from .views import (
    shop_list_create, shop_detail, shop_product_limit,
    admin_shop_list, admin_shop_verify, admin_shop_activate, admin_shop_feature,
    payment_method_active_list, payment_method_list_create, payment_method_detail,
    shop_upgrade_requests, admin_upgrade_request_list, admin_upgrade_request_approve, admin_upgrade_request_reject,
)

urlpatterns = [
    path('shops/', shop_list_create, name='shop-list-create'),
    path('shops/<slug:slug>/', shop_detail, name='shop-detail'),
    path('shops/<slug:slug>/product-limit/', shop_product_limit, name='shop-product-limit'),
    path('shops/<slug:slug>/upgrade-requests/', shop_upgrade_requests, name='shop-upgrade-requests'),

    # Back office
    path('admin/shops/', admin_shop_list, name='admin-shop-list'),
    path('admin/shops/<int:pk>/verify/', admin_shop_verify, name='admin-shop-verify'),
    path('admin/shops/<int:pk>/activate/', admin_shop_activate, name='admin-shop-activate'),
    path('admin/shops/<int:pk>/feature/', admin_shop_feature, name='admin-shop-feature'),
    path('admin/payment-methods/', payment_method_list_create, name='payment-method-list-create'),
    path('admin/payment-methods/<int:pk>/', payment_method_detail, name='payment-method-detail'),
    path('admin/upgrade-requests/', admin_upgrade_request_list, name='admin-upgrade-request-list'),
    path('admin/upgrade-requests/<int:pk>/approve/', admin_upgrade_request_approve, name='admin-upgrade-request-approve'),
    path('admin/upgrade-requests/<int:pk>/reject/', admin_upgrade_request_reject, name='admin-upgrade-request-reject'),
    path('payment-methods/', payment_method_active_list, name='payment-method-active-list'),
]
