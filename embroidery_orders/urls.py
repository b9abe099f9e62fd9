"""
URL configuration for embroidery_orders project.
"""
from django.contrib import admin
from django.urls import path

from order_lifecycle.api.views import graphql_view

urlpatterns = [
    path('admin/', admin.site.urls),
    path('graphql/', graphql_view, name='graphql'),
]
