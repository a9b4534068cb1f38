from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/", include("django.contrib.auth.urls")),
    path("", include("freight.urls")),
]


# admin customisation
admin.site.site_header = "Freight Dispatch"
admin.site.site_title = "Dispatch"
admin.site.index_title = "Dispatch Back Office"
