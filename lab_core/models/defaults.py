# =============================================================================
# lab_core/models/defaults.py
# Default Dataset seeded on first login
# =============================================================================

from typing import List

from .entities import Component, Role, SystemData, User, utc_now_iso

DEFAULT_ADMIN_EMAIL = "admin@issacasimov.in"

# (id, name, category, quantity, description)
STARTER_CATALOG = [
    ("comp-1", "Arduino Uno R3", "Microcontroller", 25, "Arduino Uno R3 development board"),
    ("comp-2", "L298N Motor Driver", "Motor Driver", 15, "Dual H-Bridge Motor Driver"),
    ("comp-3", "Ultrasonic Sensor HC-SR04", "Sensor", 20, "Ultrasonic distance sensor"),
    ("comp-4", "Servo Motor SG90", "Actuator", 30, "9g micro servo motor"),
    ("comp-5", "ESP32 Development Board", "Microcontroller", 12, "WiFi and Bluetooth enabled microcontroller"),
    ("comp-6", "Raspberry Pi 4", "Single Board Computer", 12, "Model B 4GB RAM variant"),
    ("comp-7", "Breadboard 830 Points", "Prototyping", 12, "Solderless breadboard for prototyping"),
    ("comp-8", "PIR Motion Sensor", "Sensor", 12, "Passive infrared motion sensor"),
]


def starter_components() -> List[Component]:
    """Fresh copies of the starter catalog, fully in stock."""
    return [
        Component(
            id=comp_id,
            name=name,
            category=category,
            total_quantity=quantity,
            available_quantity=quantity,
            description=description,
        )
        for comp_id, name, category, quantity, description in STARTER_CATALOG
    ]


def default_system_data(admin_email: str = DEFAULT_ADMIN_EMAIL) -> SystemData:
    """One admin, the starter catalog, no requests and no notifications."""
    admin = User(
        id="admin-1",
        name="Administrator",
        email=admin_email,
        role=Role.ADMIN,
        registered_at=utc_now_iso(),
    )
    return SystemData(
        users=[admin],
        components=starter_components(),
        requests=[],
        notifications=[],
    )
