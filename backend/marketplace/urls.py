from django.urls import path
from .views import marketplace_products, promoted_click, featured_shops

urlpatterns = [
    path('marketplace/products/', marketplace_products, name='marketplace-products'),
    path('marketplace/promotions/<int:pk>/click/', promoted_click, name='marketplace-promoted-click'),
    path('marketplace/featured-shops/', featured_shops, name='marketplace-featured-shops'),
]
