from django.urls import path
from .views import ProductListView, ProductDetailView

# Detail ids are matched as text so malformed ids get a 400 from the view, not a routing 404.
urlpatterns = [
    path('product/', ProductListView.as_view(), name='api-products-list'),
    path('product/<str:product_id>/', ProductDetailView.as_view(), name='api-products-detail'),
]
