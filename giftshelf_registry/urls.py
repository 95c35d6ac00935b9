from django.contrib import admin
from django.urls import path, include
from django.views.generic import RedirectView

urlpatterns = [
    path('admin/', admin.site.urls),
    # allauth (login, logout, signup)
    path('accounts/', include('allauth.urls')),
    # App
    path('', RedirectView.as_view(pattern_name='registries:registry_list', permanent=False)),
    path('api/', include('registries.urls')),
]

handler404 = "registries.views.error_404"
handler500 = "registries.views.error_500"
