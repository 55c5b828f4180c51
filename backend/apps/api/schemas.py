from drf_spectacular.utils import inline_serializer
from rest_framework import serializers


class ErrorDetailSerializer(serializers.Serializer):
    code = serializers.CharField()
    message = serializers.CharField()
    details = serializers.JSONField(required=False)


class ErrorResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField(default=False)
    error = ErrorDetailSerializer()
    timestamp = serializers.DateTimeField()


class MetadataSerializer(serializers.Serializer):
    timestamp = serializers.DateTimeField()


def success_envelope(
    data_serializer_class: type[serializers.Serializer],
) -> type[serializers.Serializer]:
    """Create an inline serializer describing the success envelope around ``data``.

    Returns a serializer with fields: success, data[data_serializer], metadata.
    """
    name = getattr(data_serializer_class, "__name__", "Data")
    if name.endswith("Serializer"):
        name = name[: -len("Serializer")]
    return inline_serializer(
        name=f"{name}Envelope",
        fields={
            "success": serializers.BooleanField(default=True),
            "data": data_serializer_class(),
            "metadata": MetadataSerializer(),
        },
    )
