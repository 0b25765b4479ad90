from django.urls import path

from . import views

app_name = "accounts"

urlpatterns = [
    path("", views.account_search, name="search"),
    path("<int:account_id>/", views.account_detail, name="detail"),
]
