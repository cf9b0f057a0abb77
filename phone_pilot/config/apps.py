"""App name to package name mapping for supported applications."""

APP_PACKAGES: dict[str, str] = {
    # Social & Messaging
    "微信": "com.tencent.mm",
    "WeChat": "com.tencent.mm",
    "QQ": "com.tencent.mobileqq",
    "微博": "com.sina.weibo",
    "WhatsApp": "com.whatsapp",
    "Telegram": "org.telegram.messenger",
    # E-commerce
    "淘宝": "com.taobao.taobao",
    "京东": "com.jingdong.app.mall",
    "拼多多": "com.xunmeng.pinduoduo",
    "Amazon": "com.amazon.mShop.android.shopping",
    # Lifestyle & Travel
    "美团": "com.sankuai.meituan",
    "大众点评": "com.dianping.v1",
    "饿了么": "me.ele",
    "高德地图": "com.autonavi.minimap",
    "百度地图": "com.baidu.BaiduMap",
    "携程": "ctrip.android.view",
    "12306": "com.MobileTicket",
    "滴滴出行": "com.sdu.didi.psnger",
    "Google Maps": "com.google.android.apps.maps",
    # Content & Video
    "小红书": "com.xingin.xhs",
    "知乎": "com.zhihu.android",
    "抖音": "com.ss.android.ugc.aweme",
    "快手": "com.smile.gifmaker",
    "哔哩哔哩": "tv.danmaku.bili",
    "bilibili": "tv.danmaku.bili",
    "YouTube": "com.google.android.youtube",
    "网易云音乐": "com.netease.cloudmusic",
    "QQ音乐": "com.tencent.qqmusic",
    # Payments
    "支付宝": "com.eg.android.AlipayGphone",
    # System
    "设置": "com.android.settings",
    "Settings": "com.android.settings",
    "Chrome": "com.android.chrome",
    "Gmail": "com.google.android.gm",
    "相机": "com.android.camera",
    "Camera": "com.android.camera",
    "文件管理": "com.android.documentsui",
    "Files": "com.android.documentsui",
    "时钟": "com.android.deskclock",
    "Clock": "com.android.deskclock",
    "日历": "com.android.calendar",
    "Calendar": "com.android.calendar",
    "联系人": "com.android.contacts",
    "Contacts": "com.android.contacts",
    "短信": "com.android.mms",
    "Messages": "com.google.android.apps.messaging",
    "Play Store": "com.android.vending",
}

