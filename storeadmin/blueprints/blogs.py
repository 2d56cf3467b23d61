from flask import Blueprint, request
from flask_login import login_required, current_user
from sqlalchemy import func, or_
from storeadmin.extensions import db
from storeadmin.errors import InvalidInput, NotFound
from storeadmin.models import Blog, BlogStatus
from storeadmin.middleware import role_required
from storeadmin.services.audit_service import actor_fields, log_audit
from storeadmin.utils import api_response, get_json_body, get_page_args, \
    optional_text, paginate_query, parse_enum, require_text, slugify, \
    status_counts
from datetime import datetime
import logging
import time

logger = logging.getLogger(__name__)

bp = Blueprint('blogs', __name__)


def _unique_slug(title, blog_id=None):
    base = slugify(title) or 'post'
    query = Blog.query.filter_by(slug=base)
    if blog_id is not None:
        query = query.filter(Blog.id != blog_id)
    if query.first() is None:
        return base
    return f'{base}-{int(time.time() * 1000)}'


def _tags(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(',')
    if not isinstance(value, list):
        raise InvalidInput('tags must be an array')
    return [str(tag).strip() for tag in value if str(tag).strip()]


def _set_status(blog, status):
    blog.status = status
    if status == BlogStatus.PUBLISHED and blog.published_at is None:
        blog.published_at = datetime.utcnow()


def _get_blog(blog_id):
    blog = db.session.get(Blog, blog_id)
    if not blog:
        raise NotFound('Blog post not found')
    return blog


def _audit(action, blog_id, payload=None):
    actor_id, actor_role = actor_fields(current_user)
    log_audit(
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        target_type='BLOG',
        target_id=blog_id,
        payload=payload
    )


@bp.route('/api/v1/blogs', methods=['GET'])
def list_blogs():
    page, limit = get_page_args()
    query = Blog.query
    if current_user.is_authenticated and current_user.is_admin:
        if request.args.get('status'):
            query = query.filter(Blog.status == parse_enum(
                BlogStatus, request.args.get('status'), 'status'))
    else:
        query = query.filter(Blog.status == BlogStatus.PUBLISHED)

    search = (request.args.get('search') or '').strip()
    if search:
        query = query.filter(or_(
            Blog.title.contains(search, autoescape=True),
            Blog.content.contains(search, autoescape=True),
            Blog.author.contains(search, autoescape=True)))

    blogs, pagination = paginate_query(
        query.order_by(Blog.created_at.desc(), Blog.id.desc()), page, limit)
    return api_response(data=[blog.to_dict() for blog in blogs],
                        pagination=pagination)


@bp.route('/api/v1/blogs/stats', methods=['GET'])
@login_required
@role_required('admin')
def blog_stats():
    counts = status_counts(Blog, Blog.status)
    views = db.session.query(func.coalesce(func.sum(Blog.view_count), 0)) \
        .scalar()
    return api_response(data={
        'totalPosts': sum(counts.values()),
        'publishedPosts': counts.get(BlogStatus.PUBLISHED.value, 0),
        'draftPosts': counts.get(BlogStatus.DRAFT.value, 0),
        'archivedPosts': counts.get(BlogStatus.ARCHIVED.value, 0),
        'totalViews': int(views or 0),
    })


@bp.route('/api/v1/blogs/<int:blog_id>', methods=['GET'])
@login_required
@role_required('admin')
def get_blog(blog_id):
    return api_response(data=_get_blog(blog_id).to_dict())


@bp.route('/api/v1/blogs', methods=['POST'])
@login_required
@role_required('admin')
def create_blog():
    data = get_json_body()
    title = require_text(data, 'title', max_length=255, label='Title')
    blog = Blog(
        title=title,
        slug=_unique_slug(title),
        content=require_text(data, 'content', label='Content'),
        excerpt=optional_text(data, 'excerpt'),
        author=optional_text(data, 'author', max_length=100)
        or current_user.full_name,
        featured_image=optional_text(data, 'featuredImage', max_length=500)
    )
    blog.set_tags(_tags(data.get('tags')))
    _set_status(blog, parse_enum(BlogStatus, data.get('status'), 'status',
                                 required=False) or BlogStatus.DRAFT)
    db.session.add(blog)
    db.session.commit()

    _audit('BLOG_CREATE', blog.id, {'slug': blog.slug})
    return api_response(data=blog.to_dict(),
                        message='Blog post created successfully', status=201)


@bp.route('/api/v1/blogs/<int:blog_id>', methods=['PUT'])
@login_required
@role_required('admin')
def update_blog(blog_id):
    data = get_json_body()
    blog = _get_blog(blog_id)

    if 'title' in data:
        title = require_text(data, 'title', max_length=255, label='Title')
        if title != blog.title:
            blog.title = title
            blog.slug = _unique_slug(title, blog.id)
    if 'content' in data:
        blog.content = require_text(data, 'content', label='Content')
    if 'excerpt' in data:
        blog.excerpt = optional_text(data, 'excerpt')
    if 'author' in data:
        blog.author = require_text(data, 'author', max_length=100,
                                   label='Author')
    if 'featuredImage' in data:
        blog.featured_image = optional_text(
            data, 'featuredImage', max_length=500)
    if 'tags' in data:
        blog.set_tags(_tags(data['tags']))
    if 'status' in data:
        _set_status(blog, parse_enum(BlogStatus, data['status'], 'status'))
    db.session.commit()

    _audit('BLOG_UPDATE', blog.id, {'fields': sorted(data)})
    return api_response(data=blog.to_dict(),
                        message='Blog post updated successfully')


@bp.route('/api/v1/blogs/<int:blog_id>', methods=['DELETE'])
@login_required
@role_required('admin')
def delete_blog(blog_id):
    blog = _get_blog(blog_id)
    slug = blog.slug
    db.session.delete(blog)
    db.session.commit()

    _audit('BLOG_DELETE', blog_id, {'slug': slug})
    return api_response(message='Blog post deleted successfully')
