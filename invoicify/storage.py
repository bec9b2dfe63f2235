import logging
import os

from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from invoicify.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_LOGO_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif'}


class LogoStorage:
    """Stores uploaded logos on disk and hands out public URLs for them."""

    def __init__(self, upload_folder, public_url):
        self.upload_folder = upload_folder
        self.public_url = public_url.rstrip('/')

    @classmethod
    def from_config(cls, config):
        return cls(config['UPLOAD_FOLDER'], config['PUBLIC_URL'])

    def save_logo(self, user_id, filename, stream):
        ext = secure_filename(filename).rsplit('.', 1)[-1].lower() if '.' in filename else ''
        if ext not in ALLOWED_LOGO_EXTENSIONS:
            raise ValidationError(f'Unsupported logo file type: {filename}', field='logo')

        folder = os.path.join(self.upload_folder, user_id)
        os.makedirs(folder, exist_ok=True)
        name = f'logo.{ext}'
        # Only one logo per user; a new upload replaces the old one
        for existing in os.listdir(folder):
            if existing.startswith('logo.') and existing != name:
                os.remove(os.path.join(folder, existing))

        with open(os.path.join(folder, name), 'wb') as f:
            f.write(stream.read())
        logger.info('Stored logo for user %s', user_id)
        return f'{self.public_url}/uploads/{user_id}/{name}'

    def local_path(self, url):
        """Map a public logo URL back to the file on disk, if it is ours."""
        prefix = f'{self.public_url}/uploads/'
        if not url or not url.startswith(prefix):
            return None
        path = safe_join(self.upload_folder, *url[len(prefix):].split('/'))
        if path is None:
            logger.warning('Refusing logo path outside the upload folder: %s', url)
            return None
        return path if os.path.isfile(path) else None
