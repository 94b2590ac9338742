# config/urls.py

from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Aplicações principais
    path('', include('apps.core.urls')),
    path('api/tasks/', include('apps.board.urls')),
]

# Servir arquivos estáticos em desenvolvimento
if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)

# Customizar títulos do admin
admin.site.site_header = 'Fluxo Board Admin'
admin.site.site_title = 'Fluxo Board'
admin.site.index_title = 'Administração do Sistema'
