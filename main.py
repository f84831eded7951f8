#!/usr/bin/env python3
"""
RecipeAutoPub メインスクリプト

キーローテーション管理をここで1つだけ生成し、各クライアントに注入する。
"""
import sys
import json
import argparse
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from recipe_autopub.api.gemini_api import GeminiAPI
from recipe_autopub.api.google_search_api import GoogleSearchAPI
from recipe_autopub.config.simple_config_manager import SimpleConfigManager
from recipe_autopub.core.content_generator import ContentGenerator
from recipe_autopub.core.key_rotation_manager import KeyRotationManager
from recipe_autopub.security.input_validator import InputValidator
from recipe_autopub.services.exceptions import AutoPublishError, ConfigurationError
from recipe_autopub.utils.utils import setup_logging


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """コマンドライン引数を解析"""
    parser = argparse.ArgumentParser(
        description='RecipeAutoPub コンテンツ生成',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  python main.py -t "Classic Banana Bread"              # 記事生成
  python main.py -t "Pad Thai" -t "Miso Soup" --pinterest # 複数記事 + ピン説明文
  python main.py --status                               # キーローテーション状態表示
        """
    )

    parser.add_argument(
        '--title', '-t',
        action='append',
        default=[],
        help='生成するレシピタイトル（複数指定可）'
    )

    parser.add_argument(
        '--pinterest',
        action='store_true',
        help='Pinterestピン説明文も生成'
    )

    parser.add_argument(
        '--no-search',
        action='store_true',
        help='生成前のレシピ情報検索をスキップ'
    )

    parser.add_argument(
        '--status', '-s',
        action='store_true',
        help='キーローテーション状態と設定概要を表示'
    )

    parser.add_argument(
        '--env-file',
        default='.env',
        help='.envファイルのパス (デフォルト: .env)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='詳細ログを出力'
    )

    return parser.parse_args(argv)


def build_generator(config: SimpleConfigManager) -> ContentGenerator:
    """設定から各コンポーネントを組み立てる"""
    gemini_config = config.gemini
    search_config = config.google_search

    rotation_manager = KeyRotationManager(
        pool_size=gemini_config.key_pool_size,
        error_threshold=gemini_config.error_threshold,
        key_resolver=config.get_gemini_api_key,
        key_env_prefix=gemini_config.key_env_prefix
    )

    gemini_api = GeminiAPI(
        rotation_manager=rotation_manager,
        model=gemini_config.model,
        timeout=gemini_config.api_timeout
    )

    search_api = GoogleSearchAPI(
        api_key=search_config.api_key,
        search_engine_id=search_config.search_engine_id,
        timeout=gemini_config.api_timeout
    )

    return ContentGenerator(
        gemini_api=gemini_api,
        search_api=search_api,
        validator=InputValidator(),
        max_attempts=gemini_config.max_generation_attempts,
        retry_delay=gemini_config.retry_delay
    )


def generate_posts(generator: ContentGenerator, titles: List[str],
                   search: bool = True, pinterest: bool = False) -> List[Dict[str, Any]]:
    """タイトルごとに記事を生成"""
    results = []
    for title in titles:
        result = generator.generate_blog_post(title, search_for_ingredients=search)
        if pinterest:
            result['pinterest_description'] = generator.generate_pinterest_description(
                result['title'], result['post']['excerpt']
            )
        results.append(result)
    return results


def main(argv: Optional[List[str]] = None) -> int:
    """メイン処理"""
    try:
        args = parse_arguments(argv)

        load_dotenv(args.env_file, override=False)
        config = SimpleConfigManager(env_file=None)

        log_level = 'DEBUG' if args.verbose else config.system.log_level
        logger = setup_logging(log_level, config.system.log_dir)

        generator = build_generator(config)

        if args.status:
            status = {
                'rotation': generator.gemini_api.get_rotation_status(),
                'config': config.get_config_summary(),
            }
            print(json.dumps(status, ensure_ascii=False, indent=2))
            return 0

        if not args.title:
            print("タイトルが指定されていません (--title)", file=sys.stderr)
            return 1

        with generator.gemini_api, generator.search_api:
            results = generate_posts(
                generator, args.title,
                search=not args.no_search,
                pinterest=args.pinterest
            )

        logger.info(f"=== 処理完了: {len(results)}件の記事を生成しました ===")
        print(json.dumps(results, ensure_ascii=False, indent=2))
        return 0

    except ConfigurationError as e:
        print(f"設定エラー: {e}", file=sys.stderr)
        return 1
    except AutoPublishError as e:
        print(f"システムエラー: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n処理が中断されました", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
