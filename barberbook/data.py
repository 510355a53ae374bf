# barberbook/data.py

# service key -> display name, price (cents), duration (minutes)
SERVICES = {
    "kids-haircut": {"name": "Kids Haircut", "price": 1000, "duration": 30},
    "haircut": {"name": "Haircut", "price": 1000, "duration": 60},
    "manicure": {"name": "Manicure", "price": 1300, "duration": 60},
    "nail-cut": {"name": "Nail Cut", "price": 1000, "duration": 30},
    "gel-application": {"name": "Gel Application", "price": 1500, "duration": 60},
    "tips-gel": {"name": "Tips + Gel", "price": 3500, "duration": 90},
    "acrylics": {"name": "Acrylics", "price": 5000, "duration": 120},
    "removal": {"name": "Gel/Acrylic Removal", "price": 1000, "duration": 30},
    "pedicure": {"name": "Pedicure", "price": 1500, "duration": 60},
    "facial-basic": {"name": "Facial (Basic)", "price": 3000, "duration": 60},
    "facial-premium": {"name": "Hydra Facial", "price": 4500, "duration": 90},
    "face-waxing": {"name": "Face Waxing", "price": 800, "duration": 30},
}

STAFF_ROLES = ("ADMIN", "BARBER", "BEAUTICIAN")
