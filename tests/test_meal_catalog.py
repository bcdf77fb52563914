"""Meal plan and meal catalog tests."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid

import pytest


@pytest.mark.asyncio
async def test_catalog_is_public(client, meal_plan):
    resp = await client.get("/api/meal-plans/")
    assert resp.status_code == 200
    plans = resp.json()
    assert len(plans) == 1
    assert plans[0]["name"] == "Keto Week"
    assert plans[0]["price"] == pytest.approx(49.99)
    assert {m["name"] for m in plans[0]["meals"]} == {"Egg Muffins", "Salmon Bowl"}

    resp = await client.get(f"/api/meal-plans/{meal_plan.id}")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_unknown_plan_404(client):
    resp = await client.get(f"/api/meal-plans/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Meal plan not found"}


@pytest.mark.asyncio
async def test_customer_cannot_create_plan(client, customer, auth_headers):
    resp = await client.post("/api/meal-plans/", json={"name": "Cheat Week", "price": 10},
                             headers=auth_headers(customer))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Not authorized to perform this action"


@pytest.mark.asyncio
async def test_admin_manages_plan_and_meals(client, admin, auth_headers):
    headers = auth_headers(admin)
    resp = await client.post("/api/meal-plans/", json={
        "name": "Mediterranean", "price": 59.5, "description": "Olive oil everything",
    }, headers=headers)
    assert resp.status_code == 201
    plan = resp.json()
    assert plan["meals"] == []

    resp = await client.post("/api/meals/", json={
        "name": "Greek Salad", "mealPlanId": plan["id"], "tags": ["vegetarian"],
    }, headers=headers)
    assert resp.status_code == 201
    meal = resp.json()

    resp = await client.put(f"/api/meal-plans/{plan['id']}", json={"price": 55}, headers=headers)
    assert resp.json()["price"] == 55
    assert resp.json()["name"] == "Mediterranean"

    resp = await client.put(f"/api/meals/{meal['id']}", json={"tags": ["vegetarian", "quick"]}, headers=headers)
    assert resp.json()["tags"] == ["vegetarian", "quick"]

    resp = await client.get(f"/api/meal-plans/{plan['id']}")
    assert [m["name"] for m in resp.json()["meals"]] == ["Greek Salad"]


@pytest.mark.asyncio
async def test_create_meal_for_unknown_plan(client, admin, auth_headers):
    resp = await client.post("/api/meals/", json={
        "name": "Orphan Soup", "mealPlanId": str(uuid.uuid4()),
    }, headers=auth_headers(admin))
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_filter_meals(client, meal_plan):
    resp = await client.get("/api/meals/", params={"tag": "fish"})
    assert [m["name"] for m in resp.json()] == ["Salmon Bowl"]

    resp = await client.get("/api/meals/", params={"plan_id": str(meal_plan.id)})
    assert len(resp.json()) == 2


@pytest.mark.asyncio
async def test_delete_unused_plan(client, admin, meal_plan, auth_headers):
    resp = await client.delete(f"/api/meal-plans/{meal_plan.id}", headers=auth_headers(admin))
    assert resp.status_code == 200

    assert (await client.get(f"/api/meal-plans/{meal_plan.id}")).status_code == 404
    assert (await client.get("/api/meals/")).json() == []


@pytest.mark.asyncio
async def test_delete_plan_in_use_rejected(client, admin, customer, meal_plan, auth_headers):
    await client.post("/api/subscriptions/", json={"planId": str(meal_plan.id)}, headers=auth_headers(customer))

    resp = await client.delete(f"/api/meal-plans/{meal_plan.id}", headers=auth_headers(admin))
    assert resp.status_code == 400
    assert "existing orders or subscriptions" in resp.json()["error"]


@pytest.mark.asyncio
async def test_delete_meal_in_order_rejected(client, admin, customer, meal_plan, auth_headers):
    meal_id = str(meal_plan.meals[0].id)
    await client.post("/api/orders/", json={
        "planId": str(meal_plan.id),
        "startDate": "2026-11-02T08:00:00",
        "meals": [{"mealId": meal_id, "day": "friday", "type": "lunch"}],
    }, headers=auth_headers(customer))

    resp = await client.delete(f"/api/meals/{meal_id}", headers=auth_headers(admin))
    assert resp.status_code == 400

    resp = await client.delete(f"/api/meals/{meal_plan.meals[1].id}", headers=auth_headers(admin))
    assert resp.status_code == 200
