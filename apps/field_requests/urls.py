from django.urls import path

from . import views

app_name = "field_requests"

urlpatterns = [
    path("", views.request_submit, name="submit"),
    path("mine/", views.request_list_mine, name="mine"),
    path("pending/", views.request_list_pending, name="pending"),
    path("<int:request_id>/approve/", views.request_approve, name="approve"),
    path("<int:request_id>/reject/", views.request_reject, name="reject"),
]
