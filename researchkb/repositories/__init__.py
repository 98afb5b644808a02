from .base import BaseRepository
from .item_repo import ItemRepository
from .paper_repo import PaperRepository
from .watermark_repo import WatermarkRepository
