from django.urls import path
from .views import (
    vehicle_list_create, vehicle_detail,
    route_list_create, installation_route_create, route_detail, route_status,
    route_availability_check, resource_availability,
    checklist_template_list_create, checklist_template_detail,
)

urlpatterns = [
    # Vehicle endpoints
    path('vehicles/', vehicle_list_create, name='vehicle-list-create'),
    path('vehicles/<int:pk>/', vehicle_detail, name='vehicle-detail'),

    # DeliveryRoute endpoints
    path('delivery-routes/', route_list_create, name='route-list-create'),
    path('delivery-routes/installation/', installation_route_create, name='route-installation-create'),
    path('delivery-routes/availability/check/', route_availability_check, name='route-availability-check'),
    path('delivery-routes/resources/availability/', resource_availability, name='resource-availability'),
    path('delivery-routes/<int:pk>/', route_detail, name='route-detail'),
    path('delivery-routes/<int:pk>/status/', route_status, name='route-status'),

    # ChecklistTemplate endpoints
    path('checklist-templates/', checklist_template_list_create, name='checklist-template-list-create'),
    path('checklist-templates/<int:pk>/', checklist_template_detail, name='checklist-template-detail'),
]
