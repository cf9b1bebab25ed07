# bills/api/views.py

"""
BILLS API

    GET|POST        /api/bills/
    GET|PATCH       /api/bills/{id}/
    DELETE          /api/bills/{id}/?action=delete|void   (void is the default)
    GET|POST        /api/bills/{id}/payments/
    GET|POST        /api/bills/vendors/

Error mapping:
- BillNotFoundError                                   -> 404
- BillValidationError, InventoryError,
  AccountingServiceError, Django ValidationError      -> 400
- anything else: logged, 500 with the message
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounting.services.exceptions import AccountingServiceError
from bills.api.serializers import (
    BillCreateSerializer,
    BillPaymentCreateSerializer,
    BillPaymentSerializer,
    BillSerializer,
    BillUpdateSerializer,
    VendorSerializer,
)
from bills.models import Bill, Vendor
from bills.services.bill_service import create_bill, delete_bill, update_bill, void_bill
from bills.services.exceptions import BillNotFoundError, BillValidationError
from bills.services.payment_service import record_bill_payment
from products.services.valuation import InventoryError

logger = logging.getLogger(__name__)


def _bill_queryset():
    return Bill.objects.select_related("vendor").prefetch_related(
        "lines", "lines__product", "lines__expense_account"
    )


def _bill_data(bill_id) -> dict:
    return BillSerializer(_bill_queryset().get(pk=bill_id)).data


def service_error_response(exc: Exception, *, event: str, bill_id=None) -> Response:
    if isinstance(exc, BillNotFoundError):
        return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)

    if isinstance(exc, (BillValidationError, InventoryError, AccountingServiceError)):
        logger.warning(
            "Bill %s rejected",
            event,
            extra={"bill_id": str(bill_id) if bill_id else None, "error": str(exc)},
        )
        return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, DjangoValidationError):
        return Response({"detail": "; ".join(exc.messages)}, status=status.HTTP_400_BAD_REQUEST)

    logger.exception(
        "Unexpected failure during bill %s",
        event,
        extra={"bill_id": str(bill_id) if bill_id else None},
    )
    return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)


class VendorListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = VendorSerializer

    @extend_schema(tags=["bills"], responses=VendorSerializer(many=True))
    def get(self, request):
        qs = Vendor.objects.filter(is_active=True).order_by("name")
        return Response(VendorSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["bills"], request=VendorSerializer, responses={201: VendorSerializer})
    def post(self, request):
        s = VendorSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vendor = s.save()
        return Response(VendorSerializer(vendor).data, status=status.HTTP_201_CREATED)


class BillListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = BillSerializer

    def get_queryset(self):
        qs = _bill_queryset().order_by("-bill_date", "-created_at")

        status_param = (self.request.query_params.get("status") or "").strip().lower()
        if status_param:
            qs = qs.filter(status=status_param)

        vendor_id = (self.request.query_params.get("vendor_id") or "").strip()
        if vendor_id:
            qs = qs.filter(vendor_id=vendor_id)

        search = (self.request.query_params.get("search") or "").strip()
        if search:
            qs = qs.filter(bill_number__icontains=search)
        return qs

    @extend_schema(
        tags=["bills"],
        parameters=[
            OpenApiParameter("status", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("vendor_id", str, OpenApiParameter.QUERY, required=False),
            OpenApiParameter("search", str, OpenApiParameter.QUERY, required=False),
        ],
        responses=BillSerializer(many=True),
    )
    def get(self, request):
        qs = self.get_queryset()
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(BillSerializer(page, many=True).data)
        return Response(BillSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(tags=["bills"], request=BillCreateSerializer, responses={201: BillSerializer})
    def post(self, request):
        s = BillCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            bill = create_bill(
                vendor_id=data["vendor_id"],
                bill_date=data.get("bill_date"),
                due_date=data["due_date"],
                lines=data["lines"],
                vendor_invoice_number=data.get("vendor_invoice_number") or "",
                notes=data.get("notes") or "",
                currency=data.get("currency"),
                actor=request.user,
            )
        except Exception as exc:
            return service_error_response(exc, event="create")

        return Response({"data": _bill_data(bill.id)}, status=status.HTTP_201_CREATED)


class BillDetailView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = BillSerializer

    @extend_schema(tags=["bills"], responses={200: BillSerializer, 404: OpenApiResponse()})
    def get(self, request, bill_id):
        bill = _bill_queryset().filter(pk=bill_id).first()
        if bill is None:
            return Response({"detail": "Bill not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response({"data": BillSerializer(bill).data}, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["bills"],
        request=BillUpdateSerializer,
        responses={
            200: BillSerializer,
            400: OpenApiResponse(description="Paid/void bill, invalid transition or domain error"),
            404: OpenApiResponse(description="Bill not found"),
        },
    )
    def patch(self, request, bill_id):
        s = BillUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)

        try:
            result = update_bill(bill_id=bill_id, patch=s.validated_data, actor=request.user)
        except Exception as exc:
            return service_error_response(exc, event="update", bill_id=bill_id)

        payload = {"data": _bill_data(result.bill.id)}
        if result.approved:
            if result.inventory is not None:
                payload["inventory"] = {"processed": True, **result.inventory.as_dict()}
            else:
                payload["inventory"] = {
                    "processed": False,
                    "movements": 0,
                    "journal_entry_id": None,
                    "already_processed": False,
                }
        return Response(payload, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["bills"],
        parameters=[
            OpenApiParameter(
                name="action",
                type=str,
                location=OpenApiParameter.QUERY,
                required=False,
                enum=["delete", "void"],
                description="delete: remove a draft, unpaid bill. void (default): void the bill.",
            )
        ],
        responses={
            200: OpenApiResponse(description="Bill deleted or voided"),
            400: OpenApiResponse(description="Operation not allowed in the bill's state"),
            404: OpenApiResponse(description="Bill not found"),
        },
    )
    def delete(self, request, bill_id):
        action = (request.query_params.get("action") or "void").strip().lower()

        if action == "delete":
            try:
                delete_bill(bill_id=bill_id)
            except Exception as exc:
                return service_error_response(exc, event="delete", bill_id=bill_id)
            return Response({"message": "Bill deleted"}, status=status.HTTP_200_OK)

        if action != "void":
            return Response(
                {"detail": "Invalid action. Use 'delete' or 'void'."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = void_bill(bill_id=bill_id, actor=request.user)
        except Exception as exc:
            return service_error_response(exc, event="void", bill_id=bill_id)

        return Response(
            {
                "data": _bill_data(result.bill.id),
                "message": "Bill voided",
                "inventory": result.inventory.as_dict(),
            },
            status=status.HTTP_200_OK,
        )


class BillPaymentListCreateView(GenericAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = BillPaymentSerializer

    @extend_schema(tags=["bills"], responses=BillPaymentSerializer(many=True))
    def get(self, request, bill_id):
        bill = Bill.objects.filter(pk=bill_id).first()
        if bill is None:
            return Response({"detail": "Bill not found"}, status=status.HTTP_404_NOT_FOUND)
        qs = bill.payments.order_by("-payment_date", "-created_at")
        return Response(BillPaymentSerializer(qs, many=True).data, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["bills"],
        request=BillPaymentCreateSerializer,
        responses={201: BillPaymentSerializer},
    )
    def post(self, request, bill_id):
        s = BillPaymentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            payment = record_bill_payment(
                bill_id=bill_id,
                amount=data["amount"],
                payment_method=data["payment_method"],
                payment_date=data.get("payment_date"),
                payment_account_code=data.get("payment_account_code"),
                reference=data.get("reference") or "",
                notes=data.get("notes") or "",
                actor=request.user,
            )
        except Exception as exc:
            return service_error_response(exc, event="payment", bill_id=bill_id)

        return Response(
            {"data": BillPaymentSerializer(payment).data, "bill": _bill_data(bill_id)},
            status=status.HTTP_201_CREATED,
        )
