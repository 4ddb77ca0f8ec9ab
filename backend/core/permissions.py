"""
Role based page access.

Every API area is guarded by one or more "pages". A user reaches a page when
they are an admin, when the page is in their custom_permissions list (a non
empty list replaces the role defaults), or when their role grants it.
"""
from rest_framework.permissions import BasePermission

PAGES = [
    'dashboard',
    'quotes',
    'orders',
    'production',
    'logistics',
    'stock',
    'catalog',
    'suppliers',
    'crm',
    'finance',
    'invoices',
    'receipts',
    'users',
    'checklist_templates',
]

ROLE_PERMISSIONS = {
    'vendedor': ['dashboard', 'quotes', 'orders', 'crm', 'stock'],
    'producao': ['dashboard', 'orders', 'production', 'logistics', 'stock', 'suppliers'],
    'aux_administrativo': [
        'dashboard', 'quotes', 'orders', 'logistics', 'suppliers',
        'crm', 'finance', 'invoices', 'receipts', 'catalog',
    ],
}


def is_admin_user(user):
    """Admins are users with the admin role, plus Django superusers"""
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or user.role == 'admin'


def get_user_pages(user):
    """Return the effective list of pages the user can open"""
    if not user or not user.is_authenticated:
        return []
    if is_admin_user(user):
        return list(PAGES)
    custom = user.custom_permissions or []
    if custom:
        return [page for page in custom if page in PAGES]
    return list(ROLE_PERMISSIONS.get(user.role, []))


def has_page_access(user, *pages):
    if is_admin_user(user):
        return True
    allowed = set(get_user_pages(user))
    return any(page in allowed for page in pages)


class IsAdminRole(BasePermission):
    message = 'Access restricted to administrators.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)


def page_permission(*pages):
    """Build a DRF permission class granting access to any of the given pages"""

    class HasPageAccess(BasePermission):
        message = f"You do not have access to: {', '.join(pages)}."

        def has_permission(self, request, view):
            return has_page_access(request.user, *pages)

    HasPageAccess.__name__ = f"HasPageAccess_{'_'.join(pages)}"
    return HasPageAccess
