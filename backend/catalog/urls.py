from django.urls import path
from .views import (
    category_list_create, category_detail,
    product_list_create, product_detail,
    product_variant_list_create, product_variant_detail,
    public_catalog, public_product_detail,
)

urlpatterns = [
    # Seller catalog management
    path('shops/<slug:slug>/categories/', category_list_create, name='category-list-create'),
    path('shops/<slug:slug>/categories/<int:pk>/', category_detail, name='category-detail'),
    path('shops/<slug:slug>/products/', product_list_create, name='product-list-create'),
    path('shops/<slug:slug>/products/<int:pk>/', product_detail, name='product-detail'),
    path('shops/<slug:slug>/products/<int:pk>/variants/', product_variant_list_create, name='product-variant-list-create'),
    path('shops/<slug:slug>/variants/<int:pk>/', product_variant_detail, name='product-variant-detail'),

    # Public storefront
    path('catalog/<slug:slug>/', public_catalog, name='public-catalog'),
    path('catalog/<slug:slug>/products/<int:pk>/', public_product_detail, name='public-product-detail'),
]
