from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from shapi.api.contracts import GET, POST
from shapi.api.resources import parent, resource


class OrderItem(BaseModel):
    item_id: int
    category_id: int
    amount: int


class Order(BaseModel):
    order_id: int
    customer_id: int
    items: list[OrderItem]
    total_amount: int


class OrderWithIdAlreadyExists(BaseModel):
    kind: Literal["order_with_id_already_exists"] = "order_with_id_already_exists"
    id: int


class NoItems(BaseModel):
    kind: Literal["no_items"] = "no_items"


NewOrderError = Annotated[Union[OrderWithIdAlreadyExists, NoItems], Field(discriminator="kind")]


class OrderNotExists(BaseModel):
    kind: Literal["order_not_exists"] = "order_not_exists"


@resource("/orders")
class OrdersApi:

    @resource("list")
    class ListOrders:
        p: OrdersApi = parent()
        customer_id: Optional[int] = None
        category_id: Optional[int] = None

        class Get(GET["OrdersApi.ListOrders", list[Order], None]):
            pass

    @resource("new")
    class New:
        p: OrdersApi = parent()

        class Post(POST["OrdersApi.New", Order, int, NewOrderError]):
            pass

    @resource("{id}")
    class Id:
        p: OrdersApi = parent()
        id: int

        class Get(GET["OrdersApi.Id", Order, OrderNotExists]):
            pass

        @resource("get-amount")
        class GetAmount:
            p: OrdersApi.Id = parent()

            class Get(GET["OrdersApi.Id.GetAmount", int, OrderNotExists]):
                pass

        @resource("delete")
        class Delete:
            p: OrdersApi.Id = parent()

            class Post(POST["OrdersApi.Id.Delete", None, None, OrderNotExists]):
                pass

        @resource("update")
        class Update:
            p: OrdersApi.Id = parent()

            @resource("customer")
            class Customer:
                p: OrdersApi.Id.Update = parent()

                class Post(POST["OrdersApi.Id.Update.Customer", int, None, OrderNotExists]):
                    pass

            @resource("add-item")
            class AddItem:
                p: OrdersApi.Id.Update = parent()

                class Post(POST["OrdersApi.Id.Update.AddItem", OrderItem, None, OrderNotExists]):
                    pass
