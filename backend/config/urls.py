"""
URL configuration for the garment factory backend.

All API routes live under /api/; the root path answers a plain-text
liveness string.
"""
from django.contrib import admin
from django.http import HttpResponse
from django.urls import path, include

admin.site.site_header = "Garment Factory Admin Panel"
admin.site.site_title = "Garment Factory Admin Portal"
admin.site.index_title = "Welcome to the Next Sourcing Admin Portal"


def api_root(request):
    return HttpResponse("API Working", content_type='text/plain')


urlpatterns = [
    path('', api_root, name='api-root'),
    path('admin/', admin.site.urls),
    path('api/', include('backend.core.urls')),
    path('api/', include('backend.inventory.urls')),
    path('api/', include('backend.orders.urls')),
    path('api/', include('backend.employees.urls')),
    path('api/', include('backend.finance.urls')),
]
