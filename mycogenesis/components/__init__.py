from .business_page import BusinessPageComponent
from .content_renderer import ContentRenderer
from .faq import FAQComponent
from .home import render_blog_cards, render_featured_products
from .seo_manager import SEOManager
from .templating import render_page
from .tutorial import TutorialComponent

__all__ = [
    "BusinessPageComponent",
    "ContentRenderer",
    "FAQComponent",
    "SEOManager",
    "TutorialComponent",
    "render_blog_cards",
    "render_featured_products",
    "render_page",
]
