from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include
from django.utils import timezone


def health_check(request):
    return JsonResponse({'status': 'OK', 'timestamp': timezone.now().isoformat()})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.parties.urls')),
    path('api/v1/', include('backend.sales.urls')),
    path('api/v1/', include('backend.inventory.urls')),
    path('api/v1/', include('backend.production.urls')),
    path('api/v1/', include('backend.logistics.urls')),
    path('api/v1/', include('backend.finance.urls')),
    path('api/v1/', include('backend.reports.urls')),
    path('api/v1/', include('backend.assets.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
