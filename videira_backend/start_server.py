#!/usr/bin/env python3
"""
Start the Videira Backend server
"""

import os
import sys

from config import environment
from app import create_app

if __name__ == '__main__':
    port = int(os.environ.get('PORT', '5000'))

    print("Starting Videira Backend...")
    print(f"Document store: {environment.DOCUMENT_STORE}")
    if environment.DOCUMENT_STORE == 'mongo':
        print(f"MongoDB URI: {environment.MONGO_URI}")
    print(f"Server will be available at: http://localhost:{port}")
    print("Press Ctrl+C to stop the server")

    try:
        app = create_app()
        # The reloader would start a second scheduler
        app.run(debug=True, host='0.0.0.0', port=port, use_reloader=False)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
