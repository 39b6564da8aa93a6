from shared.rabbitmq import RabbitPublisher

from .config import RABBIT_URL, SERVICE_NAME

publisher = RabbitPublisher(RABBIT_URL, SERVICE_NAME)


async def booking_status_changed(booking):
    await publisher.publish_event(
        "booking.status_changed",
        {
            "booking_id": booking.booking_id,
            "status": booking.status,
            "user_id": booking.user_id,
            "chef_id": booking.chef_id,
        },
    )


async def payment_status_changed(booking):
    await publisher.publish_event(
        "payment.status_changed",
        {
            "booking_id": booking.booking_id,
            "payment_status": booking.payment_status,
        },
    )
