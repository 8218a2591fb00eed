from django.urls import include, path
from rest_framework.routers import SimpleRouter
from .views import RoomViewSet

router = SimpleRouter()
router.register(r'', RoomViewSet, basename='room')

urlpatterns = [
    path('', include(router.urls)),
]
