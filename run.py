from learnledger import create_app

# Create Flask app instance
app = create_app()

if __name__ == '__main__':
    debug_mode = app.config['DEBUG']
    app.logger.info(f"Debug mode is {'on' if debug_mode else 'off'}")
    app.logger.info(f"Allowed CORS Origins: {app.config['CORS_ORIGINS']}")
    app.run(debug=debug_mode, host="0.0.0.0", port=5000)
