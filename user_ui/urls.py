from django.urls import path

from user_ui import views


app_name = "user_ui"

urlpatterns = [
    path("", views.index, name="index"),
]
