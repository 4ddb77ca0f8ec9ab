from django.urls import path
from .views import (
    service_order_list_create, service_order_detail, service_order_status, service_order_checklist,
    service_order_mark_rework, service_order_report_delivery_issue, service_order_request_review,
    service_order_resolve_issue, service_order_resolve_rework, service_order_resolve_delivery_issue,
    service_order_complete_review, service_order_confirm_delivery_data, service_order_derived_status,
    employee_list_create, employee_detail, employee_assign, employee_release,
    service_order_cut_pieces, cut_piece_detail, cut_piece_status, cut_piece_location,
)

urlpatterns = [
    # ServiceOrder endpoints
    path('service-orders/', service_order_list_create, name='service-order-list-create'),
    path('service-orders/<str:code>/', service_order_detail, name='service-order-detail'),
    path('service-orders/<str:code>/status/', service_order_status, name='service-order-status'),
    path('service-orders/<str:code>/checklist/', service_order_checklist, name='service-order-checklist'),
    path('service-orders/<str:code>/derived-status/', service_order_derived_status, name='service-order-derived-status'),
    path('service-orders/<str:code>/cut-pieces/', service_order_cut_pieces, name='service-order-cut-pieces'),

    # Exception workflow
    path('service-orders/<str:code>/mark-rework/', service_order_mark_rework, name='service-order-mark-rework'),
    path('service-orders/<str:code>/report-delivery-issue/', service_order_report_delivery_issue, name='service-order-report-delivery-issue'),
    path('service-orders/<str:code>/request-review/', service_order_request_review, name='service-order-request-review'),
    path('service-orders/<str:code>/resolve-issue/', service_order_resolve_issue, name='service-order-resolve-issue'),
    path('service-orders/<str:code>/resolve-rework/', service_order_resolve_rework, name='service-order-resolve-rework'),
    path('service-orders/<str:code>/resolve-delivery-issue/', service_order_resolve_delivery_issue, name='service-order-resolve-delivery-issue'),
    path('service-orders/<str:code>/complete-review/', service_order_complete_review, name='service-order-complete-review'),
    path('service-orders/<str:code>/confirm-delivery-data/', service_order_confirm_delivery_data, name='service-order-confirm-delivery-data'),

    # CutPiece endpoints
    path('cut-pieces/<str:piece_id>/', cut_piece_detail, name='cut-piece-detail'),
    path('cut-pieces/<str:piece_id>/status/', cut_piece_status, name='cut-piece-status'),
    path('cut-pieces/<str:piece_id>/location/', cut_piece_location, name='cut-piece-location'),

    # ProductionEmployee endpoints
    path('production-employees/', employee_list_create, name='employee-list-create'),
    path('production-employees/<int:pk>/', employee_detail, name='employee-detail'),
    path('production-employees/<int:pk>/assign/', employee_assign, name='employee-assign'),
    path('production-employees/<int:pk>/release/', employee_release, name='employee-release'),
]
