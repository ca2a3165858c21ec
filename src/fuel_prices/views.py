"""API views for fuel price search."""

import logging
from typing import Optional

from django.conf import settings
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, inline_serializer
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from fuel_prices.models import FetchWatermark
from fuel_prices.repositories import DatabaseWatermarkStore
from fuel_prices.serializers import SearchQuerySerializer, SearchResponseSerializer
from fuel_prices.services.search import SearchService
from fuel_prices.services.statistics import derive_statistics

logger = logging.getLogger(__name__)

ErrorSerializer = inline_serializer("Error", fields={"error": serializers.CharField()})


class FuelPriceSearchView(APIView):  # type: ignore[misc]
    """Stations inside a bounding box with recent prices and summary statistics."""

    # Public read-only data published under the Open Government Licence
    permission_classes = [AllowAny]

    @extend_schema(
        parameters=[
            OpenApiParameter(
                "bbox",
                OpenApiTypes.STR,
                required=True,
                description="west,south,east,north in decimal degrees (at most 50 KM per side)",
            ),
            OpenApiParameter(
                "limit",
                OpenApiTypes.INT,
                required=False,
                description="Price history entries per fuel type, default 1",
            ),
        ],
        responses={200: SearchResponseSerializer, 400: ErrorSerializer, 500: ErrorSerializer},
        description="Search filling stations and their fuel prices within a bounding box",
        tags=["Fuel Prices"],
    )
    def get(self, request: Request, format: Optional[str] = None) -> Response:
        query = SearchQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(
                {"error": self._first_error(query.errors)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        bbox = query.validated_data["bbox"]
        limit = query.validated_data["limit"]

        try:
            results = SearchService().search(bbox, limit)
            response = SearchResponseSerializer(
                {
                    "results": results,
                    "attribution": settings.SEARCH_ATTRIBUTION,
                    "statistics": derive_statistics(results, settings.SEARCH_PRICE_BUCKET_WIDTH),
                    "last_updated": DatabaseWatermarkStore().get(FetchWatermark.PRICES),
                }
            )
            return Response(response.data, status=status.HTTP_200_OK)

        except Exception:
            logger.exception("Error while searching fuel prices in %s", bbox)
            return Response(
                {"error": "An internal server error occurred"},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

    @staticmethod
    def _first_error(errors: dict) -> str:
        for messages in errors.values():
            if messages:
                return str(messages[0])
        return "invalid request"
