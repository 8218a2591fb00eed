from django.urls import path
from .views import user_profile, user_stats

urlpatterns = [
    path('profile/', user_profile, name='user-profile'),
    path('stats/', user_stats, name='user-stats'),
]
