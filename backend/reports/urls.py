from django.urls import path
from . import views

urlpatterns = [
    path('reports/dashboard/', views.dashboard, name='reports-dashboard'),
    path('reports/employee-productivity/', views.employee_productivity, name='reports-employee-productivity'),
    path('reports/logistics/', views.logistics_report, name='reports-logistics'),
]
