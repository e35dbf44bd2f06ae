# Perfumery - local development server
# Serves the storefront API (auth, cart, recommendations, personalization)
# on top of the SQLite database created by seed_data.py

from perfumery import create_app

app = create_app()

# ==================== MAIN ====================

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
