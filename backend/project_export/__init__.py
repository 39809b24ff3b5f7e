"""
项目批量导出系统 - 后端核心模块

模块结构：
- config/     运行期配置与导出配置解析（四级回退）
- models/     数据模型定义
- registry/   条目登记/文档存储/工作流/词表等外部协作方的适配实现
- export/     就绪校验/元数据提取/报表/图像落盘/步骤关闭
- pipeline/   流水线编排、任务管理与打包
"""

__version__ = "0.1.0"
