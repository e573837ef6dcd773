from .records import RoomRecord

IMAGE_BUCKET = "https://jekjzdfuuudzdmdmzyjw.supabase.co/storage/v1/object/public/imagesbucket/"

# Reference room catalog. Seeds the database and stands in for it when the
# database cannot be reached.
ROOMS = [
    {
        "id": 1,
        "name": "Single Room",
        "description": "Ideal for solo travelers. Includes one bed and access to essential amenities.",
        "bed_only": 1000,
        "bb": 1200,
        "half_board": 2500,
        "full_board": 3500,
        "capacity": 1,
        "amenities": ["Free Wi-Fi", "Private Bathroom", "TV", "Desk", "Wardrobe"],
        "image_url": IMAGE_BUCKET + "ACKbed.jpeg",
    },
    {
        "id": 2,
        "name": "Double Room",
        "description": "Perfect for couples or friends. Comes with a double bed and cozy atmosphere.",
        "bed_only": 1200,
        "bb": 1500,
        "half_board": 2800,
        "full_board": 4300,
        "capacity": 2,
        "amenities": ["Free Wi-Fi", "Private Bathroom", "TV", "Desk", "Wardrobe", "Mini Fridge"],
        "image_url": IMAGE_BUCKET + "ACKbedmain.jpeg",
    },
    {
        "id": 3,
        "name": "Double Room + Extra Bed",
        "description": "Spacious enough for a small family or group. Includes an additional bed for extra comfort.",
        "bed_only": 2500,
        "bb": 2900,
        "half_board": 4300,
        "full_board": 6300,
        "capacity": 3,
        "amenities": [
            "Free Wi-Fi", "Private Bathroom", "TV", "Desk", "Wardrobe", "Mini Fridge", "Seating Area",
        ],
        "image_url": IMAGE_BUCKET + "ACKbed3.jpeg",
    },
]


def fallback_rooms():
    return [RoomRecord(**{**room, "amenities": list(room["amenities"])}) for room in ROOMS]
