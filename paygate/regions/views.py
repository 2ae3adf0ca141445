"""
Region admin and lookup API.

Views in this module:
- CountryRegionView: region for one country
- RegionCountriesView: countries in a region
- CountryMappingListView: list / upsert country mappings (admin)
- GatewayPolicyListView / GatewayPolicyDetailView: gateway policies
  (manager or admin)
- ProcessingFeeView: global processing fee (read: manager or admin,
  write: manager)
- RegionalPriceListView: regional price overrides for a plan
"""

import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from paygate.billing.models import Plan
from paygate.core.api.permissions import HasUpstreamIdentity
from paygate.core.api.permissions import IsAdmin
from paygate.core.api.permissions import IsManager
from paygate.core.api.permissions import IsManagerOrAdmin
from paygate.regions.serializers import CountryMappingInputSerializer
from paygate.regions.serializers import CountryRegionSerializer
from paygate.regions.serializers import GatewayPolicyInputSerializer
from paygate.regions.serializers import ProcessingFeeInputSerializer
from paygate.regions.serializers import RegionalPriceSerializer
from paygate.regions.serializers import RegionalPricesInputSerializer
from paygate.regions.serializers import RegionGatewayPolicySerializer
from paygate.regions.services import GatewayPolicyStore
from paygate.regions.services import RegionalPricingStore
from paygate.regions.services import RegionDirectory
from paygate.regions.services import coerce_region

logger = logging.getLogger(__name__)


class CountryRegionView(APIView):
    def get(self, request, country_code):
        mapping = RegionDirectory().resolve(country_code)
        return Response(
            {"success": True, **CountryRegionSerializer(mapping).data},
        )


class RegionCountriesView(APIView):
    def get(self, request, region):
        countries = RegionDirectory().countries_in(region)
        return Response(
            {
                "success": True,
                "region": coerce_region(region).value,
                "countries": CountryRegionSerializer(countries, many=True).data,
            },
        )


class CountryMappingListView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAdmin()]
        return [HasUpstreamIdentity()]

    def get(self, request):
        mappings = RegionDirectory().all_mappings()
        return Response(
            {
                "success": True,
                "mappings": CountryRegionSerializer(mappings, many=True).data,
            },
        )

    def post(self, request):
        serializer = CountryMappingInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        mapping, created = RegionDirectory().upsert_mapping(
            country_code=serializer.validated_data["country_code"],
            country_name=serializer.validated_data["country_name"],
            region=serializer.validated_data["region"],
        )
        return Response(
            {"success": True, "mapping": CountryRegionSerializer(mapping).data},
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class GatewayPolicyListView(APIView):
    permission_classes = [IsManagerOrAdmin]

    def get(self, request):
        policies = GatewayPolicyStore().all()
        return Response(
            {
                "success": True,
                "configs": RegionGatewayPolicySerializer(policies, many=True).data,
            },
        )


class GatewayPolicyDetailView(APIView):
    permission_classes = [IsManagerOrAdmin]

    def get(self, request, region):
        policy = GatewayPolicyStore().get(region)
        return Response(
            {"success": True, "config": RegionGatewayPolicySerializer(policy).data},
        )

    def post(self, request, region):
        serializer = GatewayPolicyInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        policy = GatewayPolicyStore().upsert(region, **serializer.validated_data)
        logger.info(
            "Gateway policy for %s updated by user %s",
            policy.region,
            request.user.user_id,
        )
        return Response(
            {"success": True, "config": RegionGatewayPolicySerializer(policy).data},
        )


class ProcessingFeeView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [IsManager()]
        return [IsManagerOrAdmin()]

    def get(self, request):
        return Response(
            {"success": True, "percentage": GatewayPolicyStore().get_processing_fee()},
        )

    def post(self, request):
        serializer = ProcessingFeeInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        percentage = GatewayPolicyStore().set_processing_fee(
            serializer.validated_data["percentage"],
        )
        return Response({"success": True, "percentage": percentage})


class RegionalPriceListView(APIView):
    def get_permissions(self):
        if self.request.method == "POST":
            return [IsAdmin()]
        return [HasUpstreamIdentity()]

    def get(self, request, plan_id):
        plan = get_object_or_404(Plan, pk=plan_id)
        prices = RegionalPricingStore().for_plan(plan.pk)
        return Response(
            {
                "success": True,
                "plan_id": plan.pk,
                "base_price": plan.price,
                "prices": RegionalPriceSerializer(prices, many=True).data,
            },
        )

    def post(self, request, plan_id):
        plan = get_object_or_404(Plan, pk=plan_id)
        serializer = RegionalPricesInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        saved = RegionalPricingStore().batch_set(
            plan.pk,
            serializer.validated_data["prices"],
        )
        return Response(
            {
                "success": True,
                "plan_id": plan.pk,
                "prices": RegionalPriceSerializer(saved, many=True).data,
            },
        )
