"""Tests for the gateway error taxonomy."""

import pytest
from shared.errors import NotFoundError, UpstreamError, ValidationError, upstream_operation


class TestValidationError:
    def test_field_map_builds_the_message(self):
        error = ValidationError({"product_id": "Field required"})
        assert error.status_code == 400
        assert error.message == "product_id: Field required"
        assert error.to_dict() == {
            "success": False,
            "message": "product_id: Field required",
            "error": {"product_id": "Field required"},
        }

    def test_plain_message(self):
        error = ValidationError("Missing session ID")
        assert error.errors == {"request": "Missing session ID"}

    def test_explicit_message(self):
        assert ValidationError({"cart": "Cart is empty"}, message="Cart is empty").message == "Cart is empty"


class TestUpstreamError:
    def test_not_proxied_maps_to_500(self):
        assert UpstreamError("boom", upstream_status=409).status_code == 500

    def test_proxied_keeps_the_upstream_status(self):
        assert UpstreamError("boom", upstream_status=409, proxied=True).status_code == 409

    def test_proxied_transport_failure_maps_to_500(self):
        assert UpstreamError("boom", proxied=True).status_code == 500

    def test_not_found(self):
        assert UpstreamError("boom", upstream_status=404).is_not_found

    def test_body_without_payload(self):
        assert UpstreamError("boom").to_dict() == {"success": False, "message": "boom"}


class TestUpstreamOperation:
    def test_rewraps_with_the_operation_message(self):
        with pytest.raises(UpstreamError) as exc:
            with upstream_operation("Failed to add to cart"):
                raise UpstreamError("create failed", upstream_status=400, payload={"code": "x"}, proxied=True)

        assert exc.value.message == "Failed to add to cart"
        assert exc.value.upstream_status == 400
        assert exc.value.payload == {"code": "x"}
        assert exc.value.status_code == 400
        assert isinstance(exc.value.__cause__, UpstreamError)

    def test_other_errors_pass_through(self):
        with pytest.raises(NotFoundError):
            with upstream_operation("Failed to add to cart"):
                raise NotFoundError("Item not found in cart")
