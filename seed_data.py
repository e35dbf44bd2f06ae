"""Seed script to populate database with sample data."""

from perfumery import create_app
from perfumery.extensions import db
from perfumery.models import User, Product


PRODUCTS = [
    {'name': 'Bleu de Chanel', 'brand': 'Chanel', 'price': 135, 'gender': 'men',
     'concentration': 'Eau de Parfum', 'size': '100ml', 'is_trending': True,
     'scent_notes': {'top': ['Grapefruit', 'Lemon', 'Mint'], 'middle': ['Ginger', 'Jasmine'],
                     'base': ['Cedar', 'Sandalwood', 'Incense']},
     'occasion': ['office', 'evening']},
    {'name': 'Chanel No. 5', 'brand': 'Chanel', 'price': 150, 'gender': 'women',
     'concentration': 'Parfum', 'size': '50ml', 'is_trending': True,
     'scent_notes': {'top': ['Aldehydes', 'Neroli'], 'middle': ['Rose', 'Jasmine'],
                     'base': ['Vanilla', 'Sandalwood', 'Vetiver']},
     'occasion': ['special', 'evening']},
    {'name': 'Sauvage', 'brand': 'Dior', 'price': 120, 'gender': 'men',
     'concentration': 'Eau de Toilette', 'size': '100ml', 'is_trending': True,
     'scent_notes': {'top': ['Bergamot', 'Pepper'], 'middle': ['Lavender', 'Geranium'],
                     'base': ['Ambroxan', 'Cedar']},
     'occasion': ['daily', 'party']},
    {'name': "J'adore", 'brand': 'Dior', 'price': 140, 'gender': 'women',
     'concentration': 'Eau de Parfum', 'size': '100ml',
     'scent_notes': {'top': ['Pear', 'Melon'], 'middle': ['Rose', 'Tuberose', 'Jasmine'],
                     'base': ['Musk', 'Vanilla']},
     'occasion': ['date']},
    {'name': 'Acqua di Gio', 'brand': 'Giorgio Armani', 'price': 95, 'gender': 'men',
     'concentration': 'Eau de Toilette', 'size': '100ml',
     'scent_notes': {'top': ['Bergamot', 'Lime', 'Marine Notes'], 'middle': ['Rosemary', 'Jasmine'],
                     'base': ['White Musk', 'Cedar']},
     'occasion': ['beach', 'daily']},
    {'name': 'Black Opium', 'brand': 'Yves Saint Laurent', 'price': 125, 'gender': 'women',
     'concentration': 'Eau de Parfum', 'size': '90ml', 'is_trending': True,
     'scent_notes': {'top': ['Pink Pepper', 'Pear'], 'middle': ['Coffee', 'Jasmine'],
                     'base': ['Vanilla', 'Patchouli', 'Cedar']},
     'occasion': ['party', 'evening']},
    {'name': 'Oud Wood', 'brand': 'Tom Ford', 'price': 260, 'gender': 'unisex',
     'concentration': 'Parfum', 'size': '50ml',
     'scent_notes': {'top': ['Cardamom', 'Pepper'], 'middle': ['Oud', 'Sandalwood'],
                     'base': ['Amber', 'Tonka Bean', 'Vetiver']},
     'occasion': ['special', 'evening']},
    {'name': 'Light Blue', 'brand': 'Dolce & Gabbana', 'price': 85, 'gender': 'women',
     'concentration': 'Eau de Toilette', 'size': '100ml',
     'scent_notes': {'top': ['Sicilian Lemon', 'Apple'], 'middle': ['Bamboo', 'White Rose'],
                     'base': ['Cedar', 'Amber', 'Musk']},
     'occasion': ['daily', 'beach']},
    {'name': 'Tobacco Vanille', 'brand': 'Tom Ford', 'price': 280, 'gender': 'unisex',
     'concentration': 'Eau de Parfum', 'size': '50ml',
     'scent_notes': {'top': ['Tobacco Leaf', 'Spicy Notes'], 'middle': ['Vanilla', 'Cacao', 'Tonka Bean'],
                     'base': ['Dried Fruits', 'Woody Notes']},
     'occasion': ['evening']},
    {'name': 'Cloud', 'brand': 'Ariana Grande', 'price': 45, 'gender': 'women',
     'concentration': 'Eau de Parfum', 'size': '100ml',
     'scent_notes': {'top': ['Lavender', 'Pear', 'Bergamot'], 'middle': ['Praline', 'Coconut'],
                     'base': ['Musk', 'Woody Notes']},
     'occasion': ['daily']},
]


def slugify(name):
    """Generate a URL-friendly slug from name."""
    slug = name.lower().replace(' ', '-')
    slug = ''.join(c for c in slug if c.isalnum() or c == '-')
    return slug


def seed_database():
    """Seed the database with sample data."""
    app = create_app()

    with app.app_context():
        # Create tables
        db.create_all()

        # Check if already seeded
        if User.query.filter_by(email='shopper@example.com').first():
            print('Database already seeded!')
            return

        print('Seeding database...')

        shopper = User(email='shopper@example.com', name='Demo Shopper', role='customer')
        shopper.set_password('shopper123')
        db.session.add(shopper)

        for data in PRODUCTS:
            product = Product(slug=slugify(f"{data['brand']}-{data['name']}"), stock=25, **data)
            db.session.add(product)

        db.session.commit()
        print(f'Created 1 shopper and {len(PRODUCTS)} products.')
        print('Sign in with shopper@example.com / shopper123')


if __name__ == '__main__':
    seed_database()
