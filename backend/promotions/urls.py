from django.urls import path
from .views import (
    shop_promotions, promotion_cancel, promotion_performance, promotable_product_list,
    promotion_quote, promotion_tiers,
)

urlpatterns = [
    path('shops/<slug:slug>/promotions/', shop_promotions, name='shop-promotions'),
    path('shops/<slug:slug>/promotions/performance/', promotion_performance, name='promotion-performance'),
    path('shops/<slug:slug>/promotions/promotable/', promotable_product_list, name='promotable-products'),
    path('shops/<slug:slug>/promotions/<int:pk>/cancel/', promotion_cancel, name='promotion-cancel'),
    path('promotions/quote/', promotion_quote, name='promotion-quote'),
    path('promotions/tiers/', promotion_tiers, name='promotion-tiers'),
]
