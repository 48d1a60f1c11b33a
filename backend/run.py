# backend/run.py
import logging
import os

from clinic_admin import create_app
from clinic_admin.config import get_config

config_class = get_config()

# Configure logging
logging.basicConfig(
    level=getattr(logging, config_class.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

config_class.validate_config()
app = create_app(config_class)

if __name__ == "__main__":
    port = int(os.environ.get('PORT', 5000))
    logger.info(f"Starting Clinic Admin API on port {port}")
    logger.info(f"Timezone: {config_class.TIMEZONE}")
    logger.info(f"Integrations: {app.config['INTEGRATION_STATUS']}")

    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
