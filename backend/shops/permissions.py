"""Shop membership checks used by seller endpoints"""
from django.shortcuts import get_object_or_404
from rest_framework.exceptions import PermissionDenied

from .models import Shop, ShopUser


def get_membership(user, shop):
    if not user or not user.is_authenticated:
        return None
    return ShopUser.objects.filter(user=user, shop=shop).first()


def get_member_shop(request, slug, roles=None):
    """
    Return the shop for `slug` if the requesting user is a member.

    Staff users pass every check. When `roles` is given the member's role
    must be one of them.
    """
    shop = get_object_or_404(Shop, slug=slug)
    if request.user.is_staff:
        return shop

    membership = get_membership(request.user, shop)
    if membership is None:
        raise PermissionDenied('You do not have access to this shop.')
    if roles and membership.role not in roles:
        raise PermissionDenied('Your role does not allow this action.')
    return shop
