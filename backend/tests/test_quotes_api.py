from decimal import Decimal


def create_quote(client, payload):
    response = client.post("/api/quotes", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_create_quote_end_to_end(client, quote_payload):
    quote = create_quote(client, quote_payload)

    assert quote["status"] == "draft"
    assert quote["access_token"]
    assert Decimal(quote["line_items"][0]["total_price"]) == Decimal("900")
    assert Decimal(quote["subtotal"]) == Decimal("900")
    assert Decimal(quote["discounted_subtotal"]) == Decimal("900")
    assert Decimal(quote["tax_amount"]) == Decimal("90")
    assert Decimal(quote["total"]) == Decimal("990")

    response = client.get(f"/api/quotes/{quote['id']}/payment-schedule")
    assert response.status_code == 200
    amounts = [Decimal(e["amount"]) for e in response.json()["entries"]]
    assert amounts == [Decimal("396"), Decimal("396"), Decimal("198")]


def test_create_quote_validation_errors(client, quote_payload):
    payload = dict(quote_payload, customer_email="not-an-email")
    assert client.post("/api/quotes", json=payload).status_code == 422

    payload = dict(quote_payload, customer_name="   ")
    assert client.post("/api/quotes", json=payload).status_code == 422

    payload = dict(quote_payload)
    payload["line_items"] = [dict(quote_payload["line_items"][0], unit_price="-5")]
    assert client.post("/api/quotes", json=payload).status_code == 422

    payload = dict(
        quote_payload,
        down_payment_percentage="40",
        milestone_payment_percentage="40",
        final_payment_percentage="15",
    )
    response = client.post("/api/quotes", json=payload)
    assert response.status_code == 400
    assert response.json()["detail"] == "Milestone percentages must add up to 100%. Current total: 95%"


def test_unknown_quote_is_404(client):
    assert client.get("/api/quotes/12345").status_code == 404
    assert client.patch("/api/quotes/line-items/12345", json={"quantity": "1"}).status_code == 404
    assert client.get("/api/public/quotes/missing-token").status_code == 404


def test_line_item_endpoints_recompute_totals(client, quote_payload):
    quote = create_quote(client, quote_payload)

    response = client.post(f"/api/quotes/{quote['id']}/line-items", json={
        "category": "Materials",
        "description": "Countertop",
        "quantity": "1",
        "unit_price": "100",
    })
    assert response.status_code == 201
    item = response.json()

    detail = client.get(f"/api/quotes/{quote['id']}").json()
    assert Decimal(detail["subtotal"]) == Decimal("1000")
    assert Decimal(detail["total"]) == Decimal("1100")

    response = client.patch(f"/api/quotes/line-items/{item['id']}", json={"unit_price": "200"})
    assert Decimal(response.json()["total_price"]) == Decimal("200")

    assert client.delete(f"/api/quotes/line-items/{item['id']}").status_code == 204
    detail = client.get(f"/api/quotes/{quote['id']}").json()
    assert Decimal(detail["total"]) == Decimal("990")
    assert len(client.get(f"/api/quotes/{quote['id']}/line-items").json()) == 1


def test_line_item_with_extra_decimals_keeps_stored_total(client, quote_payload):
    quote = create_quote(client, quote_payload)

    item = client.post(f"/api/quotes/{quote['id']}/line-items", json={
        "category": "Materials",
        "description": "Trim",
        "quantity": "1.125",
        "unit_price": "100",
    }).json()
    assert Decimal(item["quantity"]) == Decimal("1.13")
    assert Decimal(item["total_price"]) == Decimal("113")

    response = client.patch(f"/api/quotes/line-items/{item['id']}", json={"sort_order": 5})
    assert Decimal(response.json()["total_price"]) == Decimal("113")
    detail = client.get(f"/api/quotes/{quote['id']}").json()
    assert Decimal(detail["subtotal"]) == Decimal("1013")


def test_line_item_update_rejects_blank_text(client, quote_payload):
    quote = create_quote(client, quote_payload)
    item_id = quote["line_items"][0]["id"]

    response = client.patch(f"/api/quotes/line-items/{item_id}", json={"category": "   "})
    assert response.status_code == 422

    response = client.patch(f"/api/quotes/line-items/{item_id}", json={"description": "  Cabinets  "})
    assert response.json()["description"] == "Cabinets"


def test_update_quote_rejects_null_valid_until(client, quote_payload):
    quote = create_quote(client, quote_payload)

    response = client.patch(f"/api/quotes/{quote['id']}", json={"valid_until": None})
    assert response.status_code == 400
    assert response.json()["detail"] == "Valid until is required"

    detail = client.get(f"/api/quotes/{quote['id']}").json()
    assert detail["valid_until"] is not None


def test_financials_endpoint(client, quote_payload):
    quote = create_quote(client, quote_payload)

    response = client.patch(f"/api/quotes/{quote['id']}/financials", json={
        "is_manual_tax": True,
        "tax_amount": "12.34",
    })
    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("912.34")

    response = client.patch(f"/api/quotes/{quote['id']}/financials", json={"discount_percentage": "150"})
    assert response.status_code == 422


def test_milestone_endpoints(client, quote_payload):
    quote = create_quote(client, quote_payload)

    response = client.put(f"/api/quotes/{quote['id']}/milestones", json={"milestones": [
        {"description": "Deposit", "percentage": "30", "order": 1},
        {"description": "Cabinets hung", "percentage": "40", "order": 2},
        {"description": "Final", "percentage": "30", "order": 3},
    ]})
    assert response.status_code == 200
    amounts = [Decimal(m["amount"]) for m in response.json()["milestones"]]
    assert amounts == [Decimal("297"), Decimal("396"), Decimal("297")]

    response = client.put(f"/api/quotes/{quote['id']}/milestones", json={"milestones": [
        {"description": "Deposit", "percentage": "40", "order": 1},
        {"description": "Cabinets hung", "percentage": "40", "order": 2},
        {"description": "Final", "percentage": "15", "order": 3},
    ]})
    assert response.status_code == 400
    assert "Current total: 95%" in response.json()["detail"]

    response = client.put(f"/api/quotes/{quote['id']}/milestones", json={"milestones": [
        {"description": "Deposit", "percentage": "25", "order": 1},
        {"description": "Framing", "percentage": "25", "order": 2},
        {"description": "Drywall", "percentage": "25", "order": 3},
        {"description": "Final", "percentage": "25", "order": 4},
    ]})
    assert response.status_code == 400
    assert "got orders [4]" in response.json()["detail"]

    response = client.put(f"/api/quotes/{quote['id']}/milestones", json={"milestones": [
        {"description": "Deposit", "percentage": "33.335", "order": 1},
        {"description": "Framing", "percentage": "33.335", "order": 2},
        {"description": "Final", "percentage": "33.33", "order": 3},
    ]})
    assert response.status_code == 422

    schedule = client.get(f"/api/quotes/{quote['id']}/milestones").json()
    assert [m["description"] for m in schedule["milestones"]] == ["Down Payment", "Cabinets hung", "Final Payment"]


def test_customer_accepts_quote(client, quote_payload):
    quote = create_quote(client, quote_payload)
    client.post(f"/api/quotes/{quote['id']}/send")

    public = client.get(f"/api/public/quotes/{quote['access_token']}")
    assert public.status_code == 200
    assert "access_token" not in public.json()
    assert public.json()["viewed_at"] is not None

    response = client.post(
        f"/api/public/quotes/{quote['access_token']}/respond",
        json={"action": "accepted", "customer_name": "Jane Doe"},
    )
    assert response.status_code == 200
    result = response.json()
    assert result["status"] == "accepted"
    assert Decimal(result["down_payment_invoice"]["amount"]) == Decimal("396")

    response = client.post(
        f"/api/public/quotes/{quote['access_token']}/respond",
        json={"action": "declined"},
    )
    assert response.status_code == 400

    response = client.post(f"/api/quotes/{quote['id']}/invoices/final")
    assert response.status_code == 201
    final = response.json()
    assert Decimal(final["amount"]) == Decimal("198")

    response = client.post(f"/api/invoices/{final['id']}/pay")
    assert response.json()["status"] == "paid"

    invoices = client.get(f"/api/quotes/{quote['id']}/invoices").json()
    assert sorted(i["invoice_type"] for i in invoices) == ["down_payment", "final"]


def test_invoice_for_unaccepted_quote_is_rejected(client, quote_payload):
    quote = create_quote(client, quote_payload)
    response = client.post(f"/api/quotes/{quote['id']}/invoices/down_payment")
    assert response.status_code == 400

    response = client.post(f"/api/quotes/{quote['id']}/invoices/deposit")
    assert response.status_code == 422


def test_delete_quote(client, quote_payload):
    quote = create_quote(client, quote_payload)
    assert client.delete(f"/api/quotes/{quote['id']}").status_code == 204
    assert client.get(f"/api/quotes/{quote['id']}").status_code == 404
    assert client.get("/api/quotes").json() == []


def test_pricing_preview(client):
    response = client.post("/api/pricing/line-item", json={
        "quantity": "10",
        "unit_price": "100",
        "discount_percentage": "20",
        "discount_amount": "500",
    })
    assert response.status_code == 200
    assert Decimal(response.json()["total_price"]) == Decimal("800")

    response = client.post("/api/pricing/quote", json={
        "line_items": [{"quantity": "10", "unit_price": "100"}],
        "tax_rate": "0.0825",
    })
    body = response.json()
    assert Decimal(body["totals"]["tax_amount"]) == Decimal("82.50")
    assert Decimal(body["totals"]["total"]) == Decimal("1082.50")
    assert [Decimal(m["amount"]) for m in body["milestones"]] == [
        Decimal("433"), Decimal("433"), Decimal("216.5")
    ]

    # Previews are not limited to three milestones
    response = client.post("/api/pricing/quote", json={
        "line_items": [{"quantity": "1", "unit_price": "1000"}],
        "milestones": [
            {"description": f"Stage {n}", "percentage": "25", "order": n} for n in range(1, 5)
        ],
    })
    assert response.status_code == 200
    assert len(response.json()["milestones"]) == 4
