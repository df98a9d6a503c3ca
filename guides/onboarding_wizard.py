"""Example walking a seller onboarding form through a stepwise workflow."""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel

from stepwise import FormWizard, StepDefinition, visible_steps
from stepwise.persistence import SQLiteStorageAdapter


class SellerProfile(BaseModel):
    name: str
    email: str
    role: str = "buyer"
    store_name: Optional[str] = None
    newsletter: bool = False


async def reserve_handle():
    print("🔒 Reserving store handle...")


async def submit(profile: SellerProfile):
    print(f"✅ Submitted onboarding for {profile.name} <{profile.email}>")


STEPS = [
    StepDefinition(id="profile", title="Your profile", fields=["name", "email"]),
    StepDefinition(id="role", title="Buyer or seller", fields=["role"]),
    StepDefinition(
        id="store",
        title="Your store",
        fields=["store_name"],
        condition=lambda data: data.get("role") == "seller",
        on_before_next=reserve_handle,
    ),
    StepDefinition(id="newsletter", title="Newsletter", optional=True),
    StepDefinition(id="review", title="Review"),
]


async def main():
    logging.basicConfig(level=logging.INFO)
    storage = SQLiteStorageAdapter("onboarding.db")

    answers = {"role": "seller"}
    steps = visible_steps(STEPS, answers)
    wizard = await FormWizard.create(
        SellerProfile, steps, submit, storage=storage, storage_key="seller-onboarding"
    )
    controller = wizard.controller
    print(f"📋 Steps: {[s.id for s in controller.steps]}")

    # Blocked until the profile fields are filled in
    await controller.next_step()
    print(f"⛔ Errors: {wizard.binding.errors}")

    await controller.update_form_data({"name": "Ada", "email": "ada@example.com", **answers})
    await controller.next_step()
    await controller.next_step()
    await controller.update_form_data({"store_name": "Ada's Goods"})
    await controller.next_step()
    await controller.skip_step()
    print(f"📈 Progress: {controller.progress:.0f}%")

    await controller.next_step()
    print(f"🏁 Complete: {controller.is_complete}")

    await controller.reset()
    storage.close()


if __name__ == "__main__":
    asyncio.run(main())
