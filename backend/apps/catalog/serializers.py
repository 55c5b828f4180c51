import math

from rest_framework import serializers

from .commands import DEFAULT_SORT, SORT_OPTIONS
from .pagination import DEFAULT_PAGE, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

SEARCH_MAX_LENGTH = 100
# Routine inputs are SQL Server ``int`` parameters.
SQL_INT_MAX = 2**31 - 1


class CommaSeparatedIdsField(serializers.Field):
    """Parses ``"1, 2,3"`` into ``[1, 2, 3]``; one bad token rejects the whole field."""

    default_error_messages = {
        "invalid": "All IDs in the comma-separated list must be integers.",
        "not_positive": "All IDs in the comma-separated list must be positive integers.",
        "out_of_range": "All IDs in the comma-separated list must be at most {max_value}.",
    }

    def to_internal_value(self, data):
        if isinstance(data, (list, tuple)):
            tokens = [str(item) for item in data]
        elif isinstance(data, (str, int)) and not isinstance(data, bool):
            tokens = str(data).split(",")
        else:
            self.fail("invalid")
        ids = []
        for token in tokens:
            try:
                value = int(token.strip())
            except (TypeError, ValueError):
                self.fail("invalid")
            if value < 1:
                self.fail("not_positive")
            if value > SQL_INT_MAX:
                self.fail("out_of_range", max_value=SQL_INT_MAX)
            ids.append(value)
        return ids

    def to_representation(self, value):
        return ",".join(str(item) for item in value)


class FiniteFloatField(serializers.FloatField):
    default_error_messages = {
        "not_finite": "A finite number is required.",
    }

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        if not math.isfinite(value):
            self.fail("not_finite")
        return value


class ProductListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(
        min_value=1, max_value=SQL_INT_MAX, default=DEFAULT_PAGE
    )
    pageSize = serializers.IntegerField(
        min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE
    )
    sort = serializers.ChoiceField(choices=SORT_OPTIONS, default=DEFAULT_SORT)
    search = serializers.CharField(
        max_length=SEARCH_MAX_LENGTH, required=False, allow_blank=True
    )
    categories = CommaSeparatedIdsField(required=False)
    flavors = CommaSeparatedIdsField(required=False)
    sizes = CommaSeparatedIdsField(required=False)
    priceMin = FiniteFloatField(min_value=0, required=False)
    priceMax = FiniteFloatField(required=False)

    def validate_search(self, value):
        return value or None

    def validate_priceMax(self, value):
        if value <= 0:
            raise serializers.ValidationError("priceMax must be a positive number.")
        return value

    def validate(self, attrs):
        price_min = attrs.get("priceMin")
        price_max = attrs.get("priceMax")
        if price_min is not None and price_max is not None and price_max <= price_min:
            raise serializers.ValidationError(
                {"priceMax": ["priceMax must be greater than priceMin."]}
            )
        return attrs


class ProductIdSerializer(serializers.Serializer):
    id = serializers.IntegerField(
        min_value=1,
        max_value=SQL_INT_MAX,
        error_messages={
            "invalid": "Product ID must be a positive integer.",
            "min_value": "Product ID must be a positive integer.",
            "max_value": "Product ID is out of range.",
        },
    )


class ProductListItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    basePrice = serializers.FloatField()
    preparationTime = serializers.CharField(allow_null=True)
    primaryImageUrl = serializers.CharField(allow_null=True)

    def to_representation(self, instance):
        if instance is None:
            return None
        # If it's already a dataclass DTO, extract attributes directly for speed
        if hasattr(instance, "__dataclass_fields__"):
            return {
                "id": instance.id,
                "name": instance.name,
                "basePrice": instance.basePrice,
                "preparationTime": instance.preparationTime,
                "primaryImageUrl": instance.primaryImageUrl,
            }
        return super().to_representation(instance)


class PaginationSerializer(serializers.Serializer):
    currentPage = serializers.IntegerField()
    pageSize = serializers.IntegerField()
    totalItems = serializers.IntegerField()
    totalPages = serializers.IntegerField()


class ProductListSerializer(serializers.Serializer):
    products = ProductListItemSerializer(many=True)
    pagination = PaginationSerializer()


class ImageSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    imageUrl = serializers.CharField()
    isPrimary = serializers.BooleanField()


class FlavorSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()


class SizeSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    priceModifier = serializers.FloatField()


class ProductDetailSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    name = serializers.CharField()
    description = serializers.CharField(allow_null=True)
    ingredients = serializers.ListField(child=serializers.CharField())
    basePrice = serializers.FloatField()
    preparationTime = serializers.CharField(allow_null=True)
    categoryId = serializers.IntegerField(allow_null=True)
    categoryName = serializers.CharField(allow_null=True)
    images = ImageSerializer(many=True)
    flavors = FlavorSerializer(many=True)
    sizes = SizeSerializer(many=True)
