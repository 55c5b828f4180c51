from rest_framework.views import APIView
from rest_framework.permissions import AllowAny
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiResponse

from apps.api.schemas import ErrorResponseSerializer, success_envelope
from apps.api.exceptions import ApplicationError
from apps.api.utils import success_response
from apps.api.validation import get_account_id
from apps.common import get_logger
from .commands import SORT_OPTIONS, ProductListParams
from .container import build_product_service
from .serializers import (
    ProductDetailSerializer,
    ProductIdSerializer,
    ProductListQuerySerializer,
    ProductListSerializer,
)

logger = get_logger(__name__).bind(component="catalog", layer="view")

_ID_LIST_HELP = "Comma-separated positive integer IDs, e.g. 1,4,7"


@extend_schema(tags=["Catalog"])
class ProductListView(APIView):
    permission_classes = [AllowAny]
    requires_account = True
    service = build_product_service()
    log = logger.bind(view="ProductListView")

    @extend_schema(
        operation_id="products_list",
        summary="List products",
        description="Paginated catalog listing with optional filters and sorting.",
        parameters=[
            OpenApiParameter("page", int, description="Page number (>= 1)"),
            OpenApiParameter("pageSize", int, description="Items per page (1-36)"),
            OpenApiParameter("sort", str, enum=list(SORT_OPTIONS)),
            OpenApiParameter("search", str, description="Up to 100 characters"),
            OpenApiParameter("categories", str, description=_ID_LIST_HELP),
            OpenApiParameter("flavors", str, description=_ID_LIST_HELP),
            OpenApiParameter("sizes", str, description=_ID_LIST_HELP),
            OpenApiParameter("priceMin", float),
            OpenApiParameter("priceMax", float),
        ],
        responses={
            200: success_envelope(ProductListSerializer),
            400: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request):
        serializer = ProductListQuerySerializer(data=request.query_params)
        if not serializer.is_valid():
            self.log.info("Product list query rejected", fields=sorted(serializer.errors))
            raise ApplicationError(
                "ValidationError", "Invalid query parameters.", details=serializer.errors
            )
        params = ProductListParams.from_validated(serializer.validated_data)
        account_id = get_account_id(request)
        self.log.debug("Handling product list request", account_id=account_id)
        result = self.service.list_products(params, account_id=account_id)
        return success_response(ProductListSerializer(result).data)


@extend_schema(tags=["Catalog"])
class ProductDetailView(APIView):
    permission_classes = [AllowAny]
    requires_account = True
    service = build_product_service()
    log = logger.bind(view="ProductDetailView")

    @extend_schema(
        operation_id="products_retrieve",
        summary="Get product",
        parameters=[OpenApiParameter("product_id", int, OpenApiParameter.PATH)],
        responses={
            200: success_envelope(ProductDetailSerializer),
            400: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request, product_id):
        serializer = ProductIdSerializer(data={"id": product_id})
        if not serializer.is_valid():
            self.log.info("Product id rejected", value=product_id)
            raise ApplicationError(
                "ValidationError", "Invalid product ID.", details=serializer.errors
            )
        product_id = serializer.validated_data["id"]
        account_id = get_account_id(request)
        self.log.debug(
            "Fetching product detail", product_id=product_id, account_id=account_id
        )
        dto = self.service.get_product(product_id, account_id=account_id)
        if not dto:
            self.log.info("Product not found", product_id=product_id)
            raise ApplicationError("NotFound", "Product not found.")
        return success_response(ProductDetailSerializer(dto).data)
