# ==================== RESERVATION_BACKEND/URLS.PY ====================
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView, TokenObtainPairView

from users.views import UserViewSet
from parking.views import ParkingLotViewSet
from reservations.views import ReservationViewSet

# Create router and register viewsets
router = DefaultRouter()
router.register(r'parking-lots', ParkingLotViewSet, basename='parking-lot')
router.register(r'reservations', ReservationViewSet, basename='reservation')

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API versioning
    path('api/v1/', include([
        # Authentication endpoints
        path('auth/', include([
            path('register/', UserViewSet.as_view({'post': 'register'}), name='register'),
            path('login/', UserViewSet.as_view({'post': 'login'}), name='login'),
            path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
            path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
            path('profile/', UserViewSet.as_view({'get': 'profile', 'put': 'profile'}), name='profile'),
        ])),

        # API routes
        path('', include(router.urls)),
    ])),
]

if settings.DEBUG:
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
